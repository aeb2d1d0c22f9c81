"""Command line interface for IonProbe."""
