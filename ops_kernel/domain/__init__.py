"""Pure domain helpers shared by every layer: clock and value conversion."""
