# jagacall/storage/__init__.py

from .janitor import TransientFile, read_text_excerpt, store_upload, transient_file
