from parcel_mcp.llm.completion import Completion, CompletionClient

__all__ = ["Completion", "CompletionClient"]
