from bqconnect.types.base import BQBaseModel

__all__ = ["BQBaseModel"]
