"""
Write replication between application nodes.

The node receiving writes from the load balancer promotes itself to primary
and pushes every created message and user to the replicas connected to its
websocket listener. Replicas dial the primary and upsert what they receive.
"""
