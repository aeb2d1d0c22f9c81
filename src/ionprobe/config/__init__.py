"""Configuration layer for IonProbe."""
