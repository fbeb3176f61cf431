"""CLI module for ssrbridge."""
