"""Textual front end for pr-inbox."""
