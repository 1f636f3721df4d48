"""HTTP API for clip planning and speaker-to-face assignment."""
