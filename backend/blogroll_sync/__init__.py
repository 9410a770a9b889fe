"""Blogroll Sync - OPML to blogroll settings service."""
