"""Tests for keeping book chapter counters in sync with chapter lifecycle."""

import random
import sqlite3
from unittest.mock import patch

import pytest

from config.exceptions import DatabaseError, NotFoundError
from models.book import Book
from models.chapter import Chapter


def _counters(db, book_id):
    book = db.get_book(book_id)
    return book.total_chapters, book.published_chapters


def _live_counts(db, book_id):
    chapters = db.get_chapters(book_id)
    return len(chapters), sum(1 for c in chapters if c.is_published)


class TestChapterLifecycle:
    def test_create_increments_total(self, db, sample_book):
        db.create_chapter(Chapter(book_id=sample_book.id, title="a"))
        db.create_chapter(Chapter(book_id=sample_book.id, title="b"))
        assert _counters(db, sample_book.id) == (2, 0)

    def test_publish_stamps_and_increments(self, db, sample_chapter):
        assert db.publish_chapter(sample_chapter.id) is True
        chapter = db.get_chapter(sample_chapter.id)
        assert chapter.is_published is True
        assert chapter.published_at is not None
        assert _counters(db, sample_chapter.book_id) == (1, 1)

    def test_double_publish_is_noop(self, db, sample_chapter):
        db.publish_chapter(sample_chapter.id)
        first_stamp = db.get_chapter(sample_chapter.id).published_at
        assert db.publish_chapter(sample_chapter.id) is False
        assert _counters(db, sample_chapter.book_id) == (1, 1)
        assert db.get_chapter(sample_chapter.id).published_at == first_stamp

    def test_unpublish_clears_and_decrements(self, db, sample_chapter):
        db.publish_chapter(sample_chapter.id)
        assert db.unpublish_chapter(sample_chapter.id) is True
        chapter = db.get_chapter(sample_chapter.id)
        assert chapter.is_published is False
        assert chapter.published_at is None
        assert _counters(db, sample_chapter.book_id) == (1, 0)

    def test_double_unpublish_stays_at_zero(self, db, sample_chapter):
        assert db.unpublish_chapter(sample_chapter.id) is False
        assert db.unpublish_chapter(sample_chapter.id) is False
        assert _counters(db, sample_chapter.book_id) == (1, 0)

    def test_delete_unpublished_chapter(self, db, sample_book):
        a = db.create_chapter(Chapter(book_id=sample_book.id, title="a"))
        b = db.create_chapter(Chapter(book_id=sample_book.id, title="b"))
        db.publish_chapter(b)
        db.delete_chapter(a)
        assert _counters(db, sample_book.id) == (1, 1)

    def test_delete_published_chapter(self, db, sample_chapter):
        db.publish_chapter(sample_chapter.id)
        deleted = db.delete_chapter(sample_chapter.id)
        assert deleted.id == sample_chapter.id
        assert db.get_chapter(sample_chapter.id) is None
        assert _counters(db, sample_chapter.book_id) == (0, 0)

    @pytest.mark.parametrize("operation", ["publish_chapter", "unpublish_chapter", "delete_chapter"])
    def test_missing_chapter_raises_not_found(self, db, operation):
        with pytest.raises(NotFoundError):
            getattr(db, operation)("gone")

    def test_counters_never_go_negative_on_drifted_book(self, db, sample_book):
        chapter_id = db.create_chapter(Chapter(book_id=sample_book.id, title="a"))
        db.publish_chapter(chapter_id)
        # simulate drift left by an older, non-atomic writer
        with db._session(write=True) as conn:
            conn.execute(
                "UPDATE books SET total_chapters = 0, published_chapters = 0 WHERE id = ?",
                (sample_book.id,),
            )
        db.delete_chapter(chapter_id)
        assert _counters(db, sample_book.id) == (0, 0)

    def test_failed_counter_write_rolls_back_chapter(self, db, sample_chapter):
        # break the books table for the duration of the publish call
        with db._session(write=True) as conn:
            conn.execute(
                "CREATE TRIGGER block_counter BEFORE UPDATE OF published_chapters ON books "
                "BEGIN SELECT RAISE(ABORT, 'counter write blocked'); END"
            )
        with pytest.raises(DatabaseError):
            db.publish_chapter(sample_chapter.id)
        assert db.get_chapter(sample_chapter.id).is_published is False
        assert _counters(db, sample_chapter.book_id) == (1, 0)


class TestBookCascade:
    def test_delete_book_removes_all_chapters(self, db, sample_book):
        for i in range(3):
            db.create_chapter(Chapter(book_id=sample_book.id, title=f"c{i}"))
        other = db.create_book(Book(title="Other", description="d", author_id="a2"))
        db.create_chapter(Chapter(book_id=other, title="keep"))

        deleted = db.delete_book(sample_book.id)
        assert deleted.id == sample_book.id
        assert db.get_book(sample_book.id) is None
        assert db.get_chapters(sample_book.id) == []
        assert len(db.get_chapters(other)) == 1

    def test_delete_missing_book_returns_none(self, db):
        assert db.delete_book("ghost") is None


class TestRecount:
    def test_recount_repairs_drift(self, db, sample_book):
        ids = [db.create_chapter(Chapter(book_id=sample_book.id, title=str(i))) for i in range(4)]
        db.publish_chapter(ids[0])
        db.publish_chapter(ids[2])
        with db._session(write=True) as conn:
            conn.execute(
                "UPDATE books SET total_chapters = 9, published_chapters = 9 WHERE id = ?",
                (sample_book.id,),
            )
        assert db.recount_chapters(sample_book.id) == (4, 2)
        assert _counters(db, sample_book.id) == (4, 2)

    def test_recount_missing_book_raises(self, db):
        with pytest.raises(NotFoundError):
            db.recount_chapters("ghost")


class TestInvariantUnderRandomOperations:
    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_counters_match_live_counts(self, db, sample_book, seed):
        rng = random.Random(seed)
        chapter_ids: list[str] = []
        for _ in range(60):
            op = rng.choice(["create", "publish", "unpublish", "delete"])
            if op == "create" or not chapter_ids:
                chapter_ids.append(db.create_chapter(Chapter(book_id=sample_book.id, title="x")))
            elif op == "publish":
                db.publish_chapter(rng.choice(chapter_ids))
            elif op == "unpublish":
                db.unpublish_chapter(rng.choice(chapter_ids))
            else:
                victim = rng.choice(chapter_ids)
                chapter_ids.remove(victim)
                db.delete_chapter(victim)

            total, published = _counters(db, sample_book.id)
            assert 0 <= published <= total
            assert (total, published) == _live_counts(db, sample_book.id)


class TestConnectionFailures:
    def test_sqlite_errors_become_database_error(self, db):
        with patch.object(db, "_get_conn", side_effect=sqlite3.OperationalError("unable to open")):
            with pytest.raises(DatabaseError, match="unable to open"):
                db.get_book("anything")
