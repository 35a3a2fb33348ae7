"""yt-dlp invocation: command building, process handling and bootstrap."""
