"""I/O layer: YAML catalog, JSON profile/park documents and serializers."""
