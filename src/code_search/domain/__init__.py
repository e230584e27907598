"""Domain layer: provider-agnostic query and result model."""
