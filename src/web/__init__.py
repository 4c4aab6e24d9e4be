"""Web application for the feature access registry."""
