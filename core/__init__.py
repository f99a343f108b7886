"""core/ -- Kernel configuration for authkit. Imports nothing from auth/ or api/."""
