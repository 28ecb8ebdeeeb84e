"""Release classification from directory names and disc layout."""
