"""lexdesk — real-time notifications and read-state for a legal practice.

The backend slice that keeps lawyers' screens current: folder favorites,
notification and message inboxes with read tracking, and WebSocket
fan-out across server instances.
"""

__version__ = "0.1.0"
