"""Domain layer: inventory model, validation, reconciliation and export."""
