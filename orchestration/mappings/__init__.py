"""Built-in external event mappings."""

from typing import TYPE_CHECKING

from . import fantasy402, telegram
from .payload import safe_first, safe_float, safe_get, safe_str

if TYPE_CHECKING:
    from ..mapper import ExternalEventMapper

__all__ = ["register_default_mappings", "safe_first", "safe_float", "safe_get", "safe_str"]


def register_default_mappings(mapper: "ExternalEventMapper") -> None:
    """Register the Fantasy402 and Telegram mappings on a mapper."""
    for mappings in (fantasy402.MAPPINGS, telegram.MAPPINGS):
        for external_type, mapper_fn in mappings.items():
            mapper.register_mapping(external_type, mapper_fn)
