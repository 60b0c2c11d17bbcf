"""Wire-level names shared by the gateway, the bridge and the routes."""
