"""Blog Post API: CRUD over a document store."""
