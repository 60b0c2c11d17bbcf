"""Authentication.

Bearer JWTs identify users on both surfaces:
1. HTTP → Authorization header → get_current_user dependency
2. WebSocket → ?token= query param or Authorization header → gateway

Both resolve to the integer user id carried in the token's `sub` claim.
"""
