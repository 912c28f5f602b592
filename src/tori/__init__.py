"""Playlist persistence for the tori terminal music player."""
