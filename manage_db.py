#!/usr/bin/env python3
"""
Database management script for deployment.

Usage:
    python manage_db.py                 # create tables
    python manage_db.py seed FILE.json  # create tables, then seed groups and titles

The seed file looks like:
    {"groups": {"101": "S1", "102": "S2"}, "titles": ["AI Chatbot", "Smart Farming"]}
"""
import os
import sys
import json

# Add current directory to path so we can import registration
sys.path.append(os.getcwd())

from registration.app import create_app
from shared.outcomes import AllocationError


def seed(app, path: str):
    """Add every group and title from the seed file, skipping existing ones."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    with app.app_context():
        for group_number, secret_code in (data.get('groups') or {}).items():
            result = app.catalog.add_group(group_number, secret_code)
            print(f"{'✓' if result.ok else '-'} group {group_number}: {result.message}")

        for title in data.get('titles') or []:
            result = app.catalog.add_title(title)
            print(f"{'✓' if result.ok else '-'} title {title}: {result.message}")


def deploy():
    """Run deployment tasks."""
    print("Creating tables...")
    app = create_app()
    print("✓ Tables ready.")

    if len(sys.argv) > 2 and sys.argv[1] == 'seed':
        try:
            seed(app, sys.argv[2])
        except (OSError, ValueError, AllocationError) as e:
            print(f"Error seeding ledger: {e}")
            sys.exit(1)


if __name__ == '__main__':
    deploy()
