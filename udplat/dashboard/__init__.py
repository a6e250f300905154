"""Live progress rendering."""
