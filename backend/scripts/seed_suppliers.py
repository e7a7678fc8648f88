"""
Seed unclaimed supplier listings from a CSV file.

CSV columns: company_name, contact_email, description (header row required).
Rows whose company name already exists are skipped.
"""
import csv
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from kindred.core.database import SessionLocal
from kindred.core.errors import KindredError
from kindred.models.supplier import Supplier
from kindred.services.profiles import create_supplier


def seed_suppliers(csv_path: str) -> tuple[int, int]:
    created = skipped = 0
    db = SessionLocal()
    try:
        with open(csv_path, newline='', encoding='utf-8') as f:
            for row in csv.DictReader(f):
                name = (row.get('company_name') or '').strip()
                if not name or db.query(Supplier).filter(Supplier.company_name == name).first():
                    skipped += 1
                    continue
                try:
                    create_supplier(db, None, name, row.get('contact_email') or None, row.get('description') or None)
                    created += 1
                except KindredError as e:
                    print(f"Skipping {name}: {e.message}")
                    skipped += 1
    finally:
        db.close()
    return created, skipped


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Seed unclaimed suppliers from CSV')
    parser.add_argument('csv_path', help='Path to CSV file')
    args = parser.parse_args()

    created, skipped = seed_suppliers(args.csv_path)
    print(f"Created {created} suppliers, skipped {skipped}")
