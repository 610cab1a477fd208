"""Tests for sync/merge.py -- field-level merge rules.

Covers:
- Each field rule of merge_words()
- Commutativity of the max/richer/non-empty fields
- Idempotence: merge(a, merge(a, b)) == merge(a, b)
- Directional id/word handling (client vs server side)
- merge_into_local() over collections, including the "apple" scenario
"""

from datetime import date, datetime, timedelta, timezone

from conftest import T0, make_word

from word_assistant.sync.merge import merge_into_local, merge_words

TODAY = date(2026, 3, 10)
T1 = T0 + timedelta(hours=1)


def _commutative_view(record):
    return (
        record.memory_stage,
        record.review_count,
        len(record.definitions),
        len(record.examples),
        bool(record.phonetic),
        bool(record.part_of_speech),
        bool(record.audio_url),
        record.date_added,
    )


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


class TestMergeWordsFields:
    def test_stage_and_review_count_take_max(self):
        a = make_word(memory_stage=3, review_count=2)
        b = make_word(memory_stage=1, review_count=9)
        merged = merge_words(a, b, today=TODAY)
        assert merged.memory_stage == 3
        assert merged.review_count == 9

    def test_longer_definition_list_wins_whole(self):
        a = make_word(definitions=["one"])
        b = make_word(definitions=["two", "three"])
        assert merge_words(a, b, today=TODAY).definitions == [
            "two",
            "three",
        ]

    def test_equal_length_lists_keep_preferred(self):
        a = make_word(examples=["mine"])
        b = make_word(examples=["theirs"])
        assert merge_words(a, b, today=TODAY).examples == ["mine"]
        assert merge_words(b, a, today=TODAY).examples == ["theirs"]

    def test_empty_never_overwrites_non_empty(self):
        a = make_word(phonetic="", part_of_speech="noun")
        b = make_word(phonetic="/ˈæp.əl/", part_of_speech="")
        merged = merge_words(a, b, today=TODAY)
        assert merged.phonetic == "/ˈæp.əl/"
        assert merged.part_of_speech == "noun"

    def test_audio_url_and_accent_travel_together(self):
        a = make_word(audio_url="", audio_accent="US")
        b = make_word(audio_url="https://audio/apple-uk.mp3", audio_accent="UK")
        merged = merge_words(a, b, today=TODAY)
        assert merged.audio_url == "https://audio/apple-uk.mp3"
        assert merged.audio_accent == "UK"

    def test_earliest_date_added(self):
        a = make_word(date_added=date(2026, 2, 1))
        b = make_word(date_added=date(2026, 1, 15))
        assert merge_words(a, b, today=TODAY).date_added == date(2026, 1, 15)
        assert merge_words(b, a, today=TODAY).date_added == date(2026, 1, 15)

    def test_review_date_recomputed_when_stages_differ(self):
        a = make_word(memory_stage=2, next_review_date=date(2026, 5, 1))
        b = make_word(memory_stage=4, next_review_date=date(2026, 3, 11))
        merged = merge_words(a, b, today=TODAY)
        assert merged.next_review_date == TODAY + timedelta(days=15)

    def test_review_date_kept_from_recent_side_when_stages_agree(self):
        older = make_word(
            memory_stage=2, next_review_date=date(2026, 3, 12), updated_at=T0
        )
        newer = make_word(
            memory_stage=2, next_review_date=date(2026, 3, 20), updated_at=T1
        )
        assert merge_words(older, newer, today=TODAY).next_review_date == (
            date(2026, 3, 20)
        )
        assert merge_words(newer, older, today=TODAY).next_review_date == (
            date(2026, 3, 20)
        )

    def test_reschedule_recomputes_when_stages_agree(self):
        a = make_word(memory_stage=5, next_review_date=date(2026, 3, 2))
        b = make_word(memory_stage=5, next_review_date=date(2026, 4, 20))
        merged = merge_words(a, b, today=TODAY, reschedule=True)
        assert merged.next_review_date == TODAY + timedelta(days=30)

    def test_archived_follows_recent_side(self):
        archived_later = make_word(archived=True, updated_at=T1)
        active_earlier = make_word(archived=False, updated_at=T0)
        assert merge_words(active_earlier, archived_later, today=TODAY).archived
        restored_later = make_word(archived=False, updated_at=T1)
        archived_earlier = make_word(archived=True, updated_at=T0)
        assert not merge_words(
            archived_earlier, restored_later, today=TODAY
        ).archived

    def test_updated_at_is_later_without_stamp(self):
        a = make_word(updated_at=T0)
        b = make_word(updated_at=T1)
        assert merge_words(a, b, today=TODAY).updated_at == T1

    def test_updated_at_is_stamp_when_given(self):
        stamp = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)
        merged = merge_words(
            make_word(updated_at=T1), make_word(), stamp=stamp, today=TODAY
        )
        assert merged.updated_at == stamp


# ---------------------------------------------------------------------------
# Algebraic properties
# ---------------------------------------------------------------------------


class TestMergeProperties:
    def _pair(self):
        a = make_word(
            id="local-1",
            memory_stage=3,
            review_count=2,
            definitions=["d1"],
            examples=["e1", "e2"],
            phonetic="",
            part_of_speech="noun",
            date_added=date(2026, 2, 1),
            updated_at=T1,
        )
        b = make_word(
            id="server-1",
            memory_stage=1,
            review_count=6,
            definitions=["d1", "d2", "d3"],
            examples=[],
            phonetic="/x/",
            part_of_speech="",
            audio_url="https://audio/x-us.mp3",
            audio_accent="US",
            date_added=date(2026, 1, 20),
            updated_at=T0,
        )
        return a, b

    def test_commutative_on_max_richer_nonempty_fields(self):
        a, b = self._pair()
        ab = merge_words(a, b, today=TODAY)
        ba = merge_words(b, a, today=TODAY)
        assert _commutative_view(ab) == _commutative_view(ba)
        assert ab.next_review_date == ba.next_review_date

    def test_idempotent(self):
        a, b = self._pair()
        once = merge_words(a, b, today=TODAY)
        assert merge_words(a, once, today=TODAY) == once

    def test_idempotent_with_equal_stages(self):
        a = make_word(memory_stage=2, next_review_date=date(2026, 3, 12))
        b = make_word(
            memory_stage=2,
            next_review_date=date(2026, 3, 14),
            updated_at=T1,
            archived=True,
        )
        once = merge_words(a, b, today=TODAY)
        assert merge_words(a, once, today=TODAY) == once

    def test_client_side_keeps_preferred_id(self):
        a, b = self._pair()
        merged = merge_words(a, b, id_from="preferred", today=TODAY)
        assert merged.id == "local-1"

    def test_server_side_keeps_existing_id(self):
        a, b = self._pair()
        merged = merge_words(a, b, id_from="other", stamp=T1, today=TODAY)
        assert merged.id == "server-1"


# ---------------------------------------------------------------------------
# merge_into_local
# ---------------------------------------------------------------------------


class TestMergeIntoLocal:
    def test_apple_scenario(self):
        local = make_word(
            "apple",
            id="local-apple",
            memory_stage=2,
            review_count=3,
            definitions=["a fruit"],
            updated_at=T1,
        )
        remote = make_word(
            "apple",
            id="server-apple",
            memory_stage=1,
            review_count=5,
            definitions=["a fruit", "a tree"],
            updated_at=T0,
        )

        [merged] = merge_into_local([local], [remote], today=TODAY)

        assert merged.id == "local-apple"
        assert merged.memory_stage == 2
        assert merged.review_count == 5
        assert merged.definitions == ["a fruit", "a tree"]
        assert merged.next_review_date == TODAY + timedelta(days=4)

    def test_new_server_words_appended(self):
        local = [make_word("apple")]
        server = [make_word("pear"), make_word("plum")]
        merged = merge_into_local(local, server, today=TODAY)
        assert [w.word for w in merged] == ["apple", "pear", "plum"]

    def test_local_only_words_kept(self):
        local = [make_word("apple"), make_word("kiwi")]
        merged = merge_into_local(local, [], today=TODAY)
        assert merged == local

    def test_echo_round_trip_changes_only_updated_at(self):
        local = make_word(memory_stage=3, review_count=4, examples=["x"])
        echo = local.model_copy(update={"updated_at": T1})

        [merged] = merge_into_local([local], [echo], today=TODAY)

        assert merged.model_dump(exclude={"updated_at"}) == local.model_dump(
            exclude={"updated_at"}
        )
        assert merged.updated_at == T1
