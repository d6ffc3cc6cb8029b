"""Build PDF manuals for project releases and publish them to a docs branch."""

__version__ = "0.1.0"
