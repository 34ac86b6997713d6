"""Template engine and note builder for clipping web pages into Obsidian"""

__version__ = "0.3.0"
