"""Notifications application package.

Notifications are created through the Observer pattern whenever
something relevant happens to a user (an application changes status, a
job alert finds new postings) and are persisted for the JSON API.
"""
