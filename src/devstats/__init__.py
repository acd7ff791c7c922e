"""Pull request statistics for GitHub contributors."""
