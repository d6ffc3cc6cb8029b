"""Git operations on the source checkout and the deployment branch."""

from .publisher import Publisher
from .source import SourceCheckout

__all__ = ["Publisher", "SourceCheckout"]
