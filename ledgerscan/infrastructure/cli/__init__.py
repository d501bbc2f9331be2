"""Rich console rendering."""
