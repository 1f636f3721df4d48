"""Speaker snippets and the speaker-to-face assignment flow."""
