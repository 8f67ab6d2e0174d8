"""Command line access to the element and taxonomy tree engines."""
