"""Domain layer: descriptors, manifests and lockfiles."""
