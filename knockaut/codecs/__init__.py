"""Payload codecs for the Knockaut backend."""
