"""blogdeploy: build the blog and publish it to the deploy branch."""

__version__ = "1.0.0"
