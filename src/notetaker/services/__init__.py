"""Service layer for the notetaker package."""
