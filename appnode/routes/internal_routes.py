"""Internal routes for replication introspection."""

from fastapi import APIRouter, Depends

from appnode.replication.node import ReplicationNode
from appnode.schemas.replication import ReplicationStatusResponse

router = APIRouter(prefix="/internal")

_replication_node: ReplicationNode = None


def set_replication_node(node: ReplicationNode):
    """Set the global replication node instance"""
    global _replication_node
    _replication_node = node


def get_replication_node() -> ReplicationNode:
    """Dependency to get replication node"""
    return _replication_node


@router.get("/replication/status", response_model=ReplicationStatusResponse)
async def replication_status(node: ReplicationNode = Depends(get_replication_node)):
    """
    Return this node's role, its outbound connection state and, when
    primary, the addresses of connected followers.
    """
    return await node.status()
