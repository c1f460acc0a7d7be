"""Interactive admin panel."""
