"""
Database package: session management, profile CRUD and the reminder store.
"""
