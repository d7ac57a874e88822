"""HTTP API exposing the wallet session and the deploy pipeline."""
