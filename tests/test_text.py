# -*- coding: utf-8 -*-
import pytest

from smartflow.ai import clean_output, render_prompt, smart_truncate


class TestRenderPrompt:
    def test_substitutes_variables(self):
        assert (
            render_prompt("Hello {{name}}!", {"name": "Ada"}) == "Hello Ada!"
        )

    def test_unknown_variables_render_empty(self):
        assert render_prompt("[{{missing}}]", {}) == "[]"

    def test_if_block_kept_when_truthy(self):
        template = "A{{#if extra}} and {{extra}}{{/if}}."
        assert render_prompt(template, {"extra": "B"}) == "A and B."
        assert render_prompt(template, {"extra": ""}) == "A."
        assert render_prompt(template, {}) == "A."

    def test_multiline_if_block(self):
        template = "{{#if style}}\nStyle: {{style}}\n{{/if}}\nBody"
        assert render_prompt(template, {"style": "kebab"}) == (
            "\nStyle: kebab\n\nBody"
        )


class TestSmartTruncate:
    def test_short_content_unchanged(self):
        assert smart_truncate("abc", max_chars=10) == "abc"

    def test_keeps_head_and_tail(self):
        content = "H" * 600 + "M" * 1000 + "T" * 400
        out = smart_truncate(content, max_chars=1000)
        assert out.startswith("H" * 600 + "\n\n[... Content truncated")
        assert out.endswith("\n\n" + "T" * 300)
        assert "Total 2000 characters" in out
        assert "first 600 and last 300" in out
        assert "M" not in out


class TestCleanOutput:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("  Hello.md  ", "Hello"),
            ('"Quarterly Report"', "Quarterly Report"),
            ("《会议纪要》", "会议纪要"),
            ("「タイトル」", "タイトル"),
            ("`name`", "name"),
            ("Title: Project Plan", "Project Plan"),
            ("文件名：周报", "周报"),
        ],
    )
    def test_single_line(self, raw, expected):
        assert clean_output(raw) == expected

    def test_multiline_prefers_marked_line(self):
        raw = "Here is a suggestion.\nTitle: Budget 2024\nHope it helps!"
        assert clean_output(raw) == "Budget 2024"

    def test_multiline_falls_back_to_last_line(self):
        raw = "Sure, here you go:\n\n\"Travel Checklist\""
        assert clean_output(raw) == "Travel Checklist"

    def test_caps_length(self):
        assert clean_output("x" * 500, max_length=10) == "x" * 10
        assert len(clean_output("y" * 500)) == 200

    def test_empty(self):
        assert clean_output("") == ""
        assert clean_output('""') == ""
