from .app_directory import AppDirectory, make_key

__all__ = ["AppDirectory", "make_key"]
