"""Map key/value codec and preload synchronisation."""
