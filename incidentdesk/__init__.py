"""incidentdesk: multi-tenant incident reporting backend."""

__version__ = "0.1.0"
