"""Pure reconciliation logic: no I/O, no logging."""
