"""CLI module for talkline."""
