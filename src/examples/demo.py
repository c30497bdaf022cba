"""
demo.py – One-shot walkthrough of the PieceOut engine.

Assumes:
  • a writable working directory (or $PIECEOUT_DB_PATH)
"""

import os
from pprint import pprint

from dotenv import load_dotenv

from pieceout import CollectionQuery, PieceOut, Puzzle, PuzzleDraft, SortKey, TimeRecord
from pieceout.config import Settings
from pieceout.logging_handler import setup_logging

load_dotenv()

DB_PATH = os.environ.get("PIECEOUT_DB_PATH", "pieceout-demo.db")

print(f"\nOpening store at {DB_PATH}\n")

setup_logging("INFO")
box = PieceOut(Settings(db_path=DB_PATH, image_dir="demo_images", timer_state_path="demo_timer.json"))


# ────────────────────────────────── 1. Event handlers ──────────────────────────────────
@box.store.events.create(TimeRecord)
def log_new_time(tx, record: TimeRecord):
    print(f"\n⏱  New time for puzzle {record.puzzle_id}: {record.duration} ({record.ppm:.2f} ppm)")


@box.store.events.update(Puzzle)
def log_updated_puzzle(tx, puzzle: Puzzle):
    print(f"   Puzzle {puzzle.id} best time is now {puzzle.best_time}")


# ────────────────────────────────── 2. Drive everything ────────────────────────────────
def main():
    box.start()
    catalog = box.catalog
    try:
        hogwarts = catalog.add_puzzle(PuzzleDraft(name="Hogwarts", brand="Ravensburger", pieces=1000))
        catalog.add_puzzle(catalog.draft_from_barcode(box.lookup, "0673419319881"))
        catalog.add_puzzle(PuzzleDraft(name="Blank Sky", pieces=500, notes="all blue"))

        catalog.log_time(hogwarts.id, 3600)
        catalog.log_manual_time(hogwarts.id, minutes=30)

        detail = catalog.detail(hogwarts.id)
        print(f"\n→ {detail.puzzle.name}: best {detail.best_time}, best PPM {detail.best_ppm}")

        query = CollectionQuery(sort=SortKey.PIECES_ASC)
        print("\nCollection by pieces:")
        pprint([(p.name, p.pieces) for p in catalog.collection(query)], width=80)

        print("\nFilter options:")
        pprint(catalog.filter_options(), width=80)
    finally:
        box.stop()


if __name__ == "__main__":
    main()
