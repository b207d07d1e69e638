"""Routing — pattern parsing, compiled resources, and first-match-wins routers.

Resources are compiled when registered; a router is frozen once the route
table is complete and is then shared read-only between requests.
"""
