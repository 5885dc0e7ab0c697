"""Domain services: stores, selection engine, notifications and scheduling."""
