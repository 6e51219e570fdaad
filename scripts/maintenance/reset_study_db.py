"""
Reset the study database.

DANGEROUS: This deletes all cards, review history, scores and activity!
Only use when you want to start fresh for testing.

Usage:
    python -m scripts.maintenance.reset_study_db
"""

from study_engine.config import configure_logging, load_settings
from study_engine.storage import Database


def main():
    settings = load_settings()
    configure_logging(settings.log_level)

    print("=" * 60)
    print("WARNING: Reset Study Database")
    print("=" * 60)
    print()
    print(f"Database: {settings.database_url}")
    print()
    print("This will DELETE:")
    print("  - All cards (state, stability, difficulty, lapses, flags)")
    print("  - All review log entries and the undo snapshot")
    print("  - All section scores and the activity trail")
    print("  - Per-project memory-model parameters")
    print()

    response = input("Are you sure you want to reset? (type 'yes' to confirm): ")

    if response.lower() == "yes":
        print("\nResetting database...")
        database = Database(settings.database_url)
        try:
            version = database.reset_db()
        finally:
            database.dispose()
        print(f"✓ Database reset complete (schema v{version})")
        print("\nThe database now has empty tables ready for new reviews.")
    else:
        print("\nCancelled. No changes made.")


if __name__ == "__main__":
    main()
