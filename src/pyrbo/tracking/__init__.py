"""Mutation tracking layer.

This package turns plain dicts and lists into observable containers and
defines the events reported when they change.  It knows nothing about
stores or timers.
"""
