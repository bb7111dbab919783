"""
Core application engine for orchestrating a download.

The `DownloadManager` turns a run into one or two supervised pipelines and
checks what they produced.
"""
