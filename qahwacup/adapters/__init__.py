"""Qahwa Cup adapters for pluggable external services."""
