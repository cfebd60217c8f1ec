"""Recurring household obligations: templates, instances and their scheduler."""
