"""Real-time infrastructure — WebSocket gateway + Redis pub/sub fan-out.

Events flow through two hops:
1. Services/routes → FanoutBridge.broadcast (local emit + Redis PUBLISH)
2. Redis SUBSCRIBE on every other instance → local emit to joined sockets

Room membership is process-local; Redis is the only cross-process signal.
"""
