"""Conduit: social blogging API (users, articles, follows, favorites)."""
