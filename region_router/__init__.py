"""Region resolution and capability routing for multi-region deployments."""
