"""
API Routers for FileHub.

Each router handles a specific domain:
- auth: Registration, login, current profile, password changes
- profiles: Own profile edits, other profiles, dashboard preferences
- admin: User list, role management, statistics
- categories: Folder tree
- files: Uploads, metadata, search, browser, downloads and previews
- messages: Messages and announcements, plus their comments
- comments: Comment edits, deletes and counts
- notifications: The caller's notifications
- dashboard: Landing-page summary
- storage: Signed URL object reads
- websocket: Real-time change feed
"""

from . import (
    auth,
    profiles,
    admin,
    categories,
    files,
    messages,
    comments,
    notifications,
    dashboard,
    storage,
    websocket,
)
