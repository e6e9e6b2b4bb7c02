"""State container layer.

Containers hold a live value, notify listeners on change and hydrate
themselves once from persisted data through their storage handler.
"""
