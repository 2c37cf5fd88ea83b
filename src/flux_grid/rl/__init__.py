"""Agent scripts for the Flux Grid Gymnasium environment."""
