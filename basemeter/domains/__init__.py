"""Domain modules: subscriptions, billing, usage charging, pricing and admin."""
