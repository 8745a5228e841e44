from parcel_mcp.backend.client import BackendClient

__all__ = ["BackendClient"]
