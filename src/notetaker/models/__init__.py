"""Data models for the notetaker package."""
