"""HTTP surface for BugScout."""
