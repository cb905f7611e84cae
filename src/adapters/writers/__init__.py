"""Bundle writer adapters for Case-Weaver."""

from src.adapters.writers.json_writer import JSONBundleWriter

__all__ = ["JSONBundleWriter"]
