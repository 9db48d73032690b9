"""Event discovery and scheduling engine for the ParentConnect app."""
