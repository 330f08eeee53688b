"""Transport-agnostic request handling"""

from .handlers import RequestHandler

__all__ = ["RequestHandler"]
