"""Command line tool for helm-deploy."""
