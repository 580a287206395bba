"""Models generated by ``m365-tasks-codegen``; ``client.py`` is written here."""
