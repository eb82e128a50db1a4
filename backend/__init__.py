"""
Backend package for Message in a Bottle.

This package provides a FastAPI application with database, storage and
cache abstractions for sending anonymous messages to named recipients,
browsing bottles, user profiles and the admin back office.
"""
