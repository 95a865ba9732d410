"""basemeter: subscription gate and metered billing ledger for workspace tenants."""
