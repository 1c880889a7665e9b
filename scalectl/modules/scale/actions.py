"""Idempotent toolkit actions.

The toolkit is authoritative on duplicate detection, so a non-zero exit from
a registration is treated as "already present" and the run carries on. Each
action is attempted exactly once.
"""
import logging

from . import output
from .models import ActionOutcome, NodeRoles
from .toolkit import Toolkit

logger = logging.getLogger("scale.actions")


def _report(result) -> None:
    if result.stdout.strip():
        output.info(result.stdout.rstrip())


def add_node(toolkit: Toolkit, roles: NodeRoles, node: str) -> ActionOutcome:
    """Register a node with the toolkit, skipping on any failure."""
    result = toolkit.run(toolkit.node_add_command(node, roles), capture=True)
    _report(result)
    if not result.ok:
        output.warn(f"Node {node} skipped")
        logger.warning(f"node add {node} exited with {result.returncode}: {result.stderr.strip() or result.stdout.strip()}")
        return ActionOutcome.SKIPPED
    return ActionOutcome.OK


def add_storage_resource(toolkit: Toolkit, node: str, device: str, failure_group: int) -> ActionOutcome:
    """Define an NSD on a node, skipping on any failure."""
    result = toolkit.run(toolkit.nsd_add_command(node, device, failure_group), capture=True)
    _report(result)
    if not result.ok:
        output.warn(f"NSD {device} on {node} skipped")
        logger.warning(
            f"nsd add {device} on {node} (fg {failure_group}) exited with "
            f"{result.returncode}: {result.stderr.strip() or result.stdout.strip()}"
        )
        return ActionOutcome.SKIPPED
    return ActionOutcome.OK
