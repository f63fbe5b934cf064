import json
import re
from unittest.mock import AsyncMock

import pytest

from incidentdesk.data.api import INCIDENT_REPORT
from incidentdesk.exceptions import DetectionError, NotFoundError
from incidentdesk.worker.analyze import ReportAnalyzer, analyzed_image_key, output_locations

KEY_PATTERN = re.compile(r"^incident-photos/r1/analyzed-\d+-[a-z0-9]{6}\.jpeg$")


@pytest.fixture()
def detection() -> AsyncMock:
    mock = AsyncMock()
    mock.analyze.return_value = {"detections": []}
    return mock


@pytest.fixture()
def analyzer(data_api, object_store, detection) -> ReportAnalyzer:
    return ReportAnalyzer(data_api, object_store, detection, reported_peril="hail")


async def _report(data_api, photos: list[str]) -> str:
    created = await data_api.create(
        INCIDENT_REPORT,
        {
            "incidentDate": "2024-05-01",
            "description": "roof",
            "photoUrls": photos,
            "status": "in_review",
        },
    )
    return created.data["id"]


async def _stored_analysis(data_api, report_id: str) -> dict:
    report = (await data_api.get(INCIDENT_REPORT, report_id)).data
    return json.loads(report["aiAnalysis"])


async def _put_detector_output(object_store, key: str) -> str:
    # Detector output lives in a different bucket of the same local root
    path = object_store._resolve_path("detector-out", key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"jpeg-bytes")
    return f"s3://detector-out/{key}"


@pytest.mark.unit
class TestHelpers:
    def test_analyzed_image_key(self) -> None:
        assert KEY_PATTERN.match(analyzed_image_key("incident-photos", "r1"))

    def test_output_locations_distinct_in_order(self) -> None:
        detections = [
            {"output_s3_uri": "s3://b/2"},
            {"output_s3_uri": "s3://b/1"},
            {"label": "no output"},
            {"output_s3_uri": "s3://b/2"},
        ]
        assert output_locations(detections) == ["s3://b/2", "s3://b/1"]

    def test_output_locations_ignore_malformed_entries(self) -> None:
        detections = [None, 7, {"output_s3_uri": ["s3://b/1"]}, {"output_s3_uri": "s3://b/2"}]
        assert output_locations(detections) == ["s3://b/2"]


@pytest.mark.unit
class TestReportAnalyzer:
    async def test_no_photos_is_a_noop(self, analyzer, data_api, object_store, detection) -> None:
        report_id = await _report(data_api, [])
        object_store.put = AsyncMock()
        object_store.read_location = AsyncMock()

        outcome = await analyzer.run(report_id)

        assert outcome.success is True
        assert outcome.message == "No photos to analyze"
        detection.analyze.assert_not_called()
        object_store.put.assert_not_called()
        object_store.read_location.assert_not_called()

    async def test_missing_report_is_recorded_and_raised(self, analyzer, data_api) -> None:
        with pytest.raises(NotFoundError):
            await analyzer.run("missing")

    async def test_zero_detections(self, analyzer, data_api, detection) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        outcome = await analyzer.run(report_id)

        assert outcome.success is True
        stored = await _stored_analysis(data_api, report_id)
        assert stored["detections"] == []
        assert stored["all_local_paths"] == []
        assert "copy_warnings" not in stored
        report = (await data_api.get(INCIDENT_REPORT, report_id)).data
        assert report["status"] == "submitted"

    async def test_payload_uses_application_bucket(
        self, analyzer, data_api, detection, object_store
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.png"])
        await analyzer.run(report_id)
        payload = detection.analyze.await_args.args[0]
        uri = f"s3://{object_store.bucket}/incident-photos/x/a.png"
        assert payload["images"] == [{"s3_uri": uri, "format": "image/png"}]
        assert payload["analysis_context"]["reported_peril"] == "hail"

    async def test_copies_each_distinct_location_once(
        self, analyzer, data_api, detection, object_store
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        first = await _put_detector_output(object_store, "out/1.jpeg")
        second = await _put_detector_output(object_store, "out/2.jpeg")
        detection.analyze.return_value = {
            "detections": [
                {"label": "dent", "output_s3_uri": first},
                {"label": "crack", "output_s3_uri": second},
                {"label": "dent", "output_s3_uri": first},
                {"label": "none"},
            ]
        }
        object_store.read_location = AsyncMock(wraps=object_store.read_location)

        await analyzer.run(report_id)

        assert object_store.read_location.await_count == 2
        stored = await _stored_analysis(data_api, report_id)
        detections = stored["detections"]
        assert detections[0]["local_output_path"] == detections[2]["local_output_path"]
        assert detections[0]["local_output_path"] != detections[1]["local_output_path"]
        assert "local_output_path" not in detections[3]
        assert stored["all_local_paths"] == [
            detections[0]["local_output_path"],
            detections[1]["local_output_path"],
        ]
        for key in stored["all_local_paths"]:
            assert await object_store.read_location(object_store.bucket, key) == b"jpeg-bytes"

    async def test_failed_copy_is_a_warning(
        self, analyzer, data_api, detection, object_store
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        good = await _put_detector_output(object_store, "out/ok.jpeg")
        detection.analyze.return_value = {
            "detections": [
                {"output_s3_uri": good},
                {"output_s3_uri": "s3://detector-out/out/missing.jpeg"},
                {"output_s3_uri": "not-a-location"},
            ]
        }

        outcome = await analyzer.run(report_id)

        assert outcome.success is True
        stored = await _stored_analysis(data_api, report_id)
        assert "local_output_path" in stored["detections"][0]
        assert "local_output_path" not in stored["detections"][1]
        assert "local_output_path" not in stored["detections"][2]
        assert len(stored["all_local_paths"]) == 1
        assert [w["uri"] for w in stored["copy_warnings"]] == [
            "s3://detector-out/out/missing.jpeg",
            "not-a-location",
        ]

    async def test_non_dict_detections_are_kept_and_skipped(
        self, analyzer, data_api, detection, object_store
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        good = await _put_detector_output(object_store, "out/ok.jpeg")
        detection.analyze.return_value = {"detections": [None, "dent", {"output_s3_uri": good}]}

        outcome = await analyzer.run(report_id)

        assert outcome.success is True
        stored = await _stored_analysis(data_api, report_id)
        assert stored["detections"][:2] == [None, "dent"]
        assert "local_output_path" in stored["detections"][2]
        assert len(stored["all_local_paths"]) == 1
        assert "copy_warnings" not in stored

    async def test_non_string_location_is_a_warning(
        self, analyzer, data_api, detection, object_store
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        detection.analyze.return_value = {
            "detections": [{"label": "hail", "output_s3_uri": ["s3://detector-out/k.jpeg"]}]
        }

        outcome = await analyzer.run(report_id)

        assert outcome.success is True
        stored = await _stored_analysis(data_api, report_id)
        assert "local_output_path" not in stored["detections"][0]
        assert stored["all_local_paths"] == []
        assert stored["copy_warnings"] == [
            {"uri": "['s3://detector-out/k.jpeg']", "error": "Malformed output location"}
        ]

    async def test_detection_failure_is_recorded(self, analyzer, data_api, detection) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        detection.analyze.side_effect = DetectionError("Detection internal error: throttled")

        with pytest.raises(DetectionError):
            await analyzer.run(report_id)

        stored = await _stored_analysis(data_api, report_id)
        assert stored == {"status": "failed", "error": "Detection internal error: throttled"}

    async def test_failure_recording_error_does_not_mask_original(
        self, analyzer, data_api, detection
    ) -> None:
        report_id = await _report(data_api, ["incident-photos/x/a.jpg"])
        detection.analyze.side_effect = DetectionError("boom")
        data_api.update = AsyncMock(side_effect=RuntimeError("data api down"))

        with pytest.raises(DetectionError, match="boom"):
            await analyzer.run(report_id)
