"""Catalog services.

Services hold all catalog logic and are called by routes. They take their
storage and cache handles as explicit arguments so tests can pass doubles.
"""
