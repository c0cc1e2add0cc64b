"""Declaration, resolution and package lookup."""
