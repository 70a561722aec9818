"""``/zoom`` slash command -- parsing, dispatch and autocomplete metadata."""
