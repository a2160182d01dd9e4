"""Factory helpers for runtime entities."""

from .id_factory import make_member_id, make_run_id
from .squad_factory import create_squad_from_ids, create_squad_member, snapshot_squad

__all__ = [
    "create_squad_from_ids",
    "create_squad_member",
    "make_member_id",
    "make_run_id",
    "snapshot_squad",
]
