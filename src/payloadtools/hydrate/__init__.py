"""Value resolution, casting, processor registry and the hydration engine."""
