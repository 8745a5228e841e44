from .api import create_app
from .router import extract_plan, route

__all__ = ["create_app", "extract_plan", "route"]
