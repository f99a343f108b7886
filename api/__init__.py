"""api/ -- HTTP transport layer. Imports from auth/ and core/, never the other way around."""
