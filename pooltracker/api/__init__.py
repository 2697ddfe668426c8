"""HTTP API for pooltracker."""
