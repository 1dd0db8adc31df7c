"""HTTP boundary for Locus: FastAPI app, routes and response models."""
