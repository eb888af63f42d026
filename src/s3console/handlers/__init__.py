"""Request handlers for the console API, one class per resource."""
