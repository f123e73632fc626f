"""sitechat command-line interface."""
