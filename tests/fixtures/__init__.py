"""Reusable test doubles and factories."""
