"""Tests for vaultlinker.persist — front matter stamping and note writing."""

from __future__ import annotations

from datetime import date

import yaml

from vaultlinker.persist import persist_document, update_date_modified

TODAY = date(2024, 6, 15)


class TestUpdateDateModified:
    def test_stamps_existing_frontmatter(self):
        content = "---\ntitle: Note\n---\nbody [[Kyri]]\n"
        updated = update_date_modified(content, TODAY)
        assert updated == "---\ntitle: Note\ndate_modified: '2024-06-15'\n---\nbody [[Kyri]]\n"
        raw = updated.split("---\n")[1]
        assert yaml.safe_load(raw) == {"title": "Note", "date_modified": "2024-06-15"}

    def test_overwrites_previous_value_in_place(self):
        content = "---\ndate_modified: 2020-01-01\ntitle: Note\n---\nbody"
        assert update_date_modified(content, TODAY) == (
            "---\ndate_modified: '2024-06-15'\ntitle: Note\n---\nbody"
        )

    def test_comments_and_flow_style_kept(self):
        content = "---\n# people\naliases: [K, Kyri]  # short names\ntags: {a: 1}\n---\nbody"
        updated = update_date_modified(content, TODAY)
        assert updated.startswith("---\n# people\naliases: [K, Kyri]  # short names\ntags: {a: 1}\n")
        assert "date_modified: '2024-06-15'\n---\nbody" in updated

    def test_crlf_line_endings_kept(self):
        content = "---\r\ntitle: Note\r\n---\r\nbody\r\n"
        assert update_date_modified(content, TODAY) == (
            "---\r\ntitle: Note\r\ndate_modified: '2024-06-15'\r\n---\r\nbody\r\n"
        )

    def test_crlf_existing_value_replaced(self):
        content = "---\r\ndate_modified: x\r\ntitle: Note\r\n---\r\nbody"
        assert update_date_modified(content, TODAY) == (
            "---\r\ndate_modified: '2024-06-15'\r\ntitle: Note\r\n---\r\nbody"
        )

    def test_nested_key_not_mistaken_for_top_level(self):
        content = "---\nmeta:\n  date_modified: old\n---\nbody"
        updated = update_date_modified(content, TODAY)
        assert "  date_modified: old\n" in updated
        assert yaml.safe_load(updated.split("---\n")[1])["date_modified"] == "2024-06-15"

    def test_no_frontmatter_unchanged(self):
        assert update_date_modified("just body", TODAY) == "just body"

    def test_non_mapping_unchanged(self):
        content = "---\n- a\n---\nbody"
        assert update_date_modified(content, TODAY) == content

    def test_invalid_yaml_unchanged(self):
        content = "---\na: [oops\n---\nbody"
        assert update_date_modified(content, TODAY) == content


class TestPersistDocument:
    def test_writes_file_and_updates_document(self, write_note, load_note):
        path = write_note("Note", "---\ntitle: Note\n---\nhi Kyri\n")
        doc = load_note(path)
        result = persist_document(doc, "---\ntitle: Note\n---\nhi [[Kyri]]\n", today=TODAY)
        assert result == path
        written = path.read_text(encoding="utf-8")
        assert "hi [[Kyri]]" in written
        assert "date_modified: '2024-06-15'" in written
        assert doc.content == written

    def test_crlf_note_written_back_as_crlf(self, write_note, load_note):
        path = write_note("Note", "")
        path.write_bytes(b"---\r\ntitle: Note\r\n---\r\nhi Kyri\r\n")
        doc = load_note(path)
        assert doc.content == "---\r\ntitle: Note\r\n---\r\nhi Kyri\r\n"
        persist_document(doc, doc.content.replace("Kyri", "[[Kyri]]"), today=TODAY)
        assert path.read_bytes() == (
            b"---\r\ntitle: Note\r\ndate_modified: '2024-06-15'\r\n---\r\nhi [[Kyri]]\r\n"
        )

    def test_dry_run_does_not_write(self, write_note, load_note):
        path = write_note("Note", "hi Kyri\n")
        doc = load_note(path)
        persist_document(doc, "hi [[Kyri]]\n", dry_run=True)
        assert path.read_text(encoding="utf-8") == "hi Kyri\n"
        assert doc.content == "hi Kyri\n"
