"""Implementation of the scode no-sandbox launch hook."""
