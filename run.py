#!/usr/bin/env python3
"""Run the WellTrack API server."""

from welltrack.main import run

if __name__ == "__main__":
    run()
