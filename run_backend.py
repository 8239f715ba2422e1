#!/usr/bin/env python
"""Script to run the Habit Tracker API server."""
import os
from pathlib import Path

# Run from the repository root so relative paths (sqlite file, .env) resolve
os.chdir(Path(__file__).resolve().parent)

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "habit_tracker.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "true").lower() == "true",
    )
