"""Services that read and write the catalog."""
