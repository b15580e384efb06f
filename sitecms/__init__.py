"""Content backend for the agency website: blog posts and project listings."""
