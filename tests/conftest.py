import os

# Headless test runs: let Qt use the offscreen platform when no display is set.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
