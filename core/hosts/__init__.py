"""Media host adapters (library discovery, rescans, catalog trailer metadata)."""
