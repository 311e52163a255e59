"""Tests for dotstrap.policy and dotstrap.lib.prompts."""

from __future__ import annotations

from pathlib import Path

import pytest

from dotstrap.conflicts import detect_conflicts
from dotstrap.deployer import Policy
from dotstrap.lib.prompts import AutoPrompter, ConsolePrompter
from dotstrap.policy import (
    CHOICE_BACKUP,
    CHOICE_CANCEL,
    CHOICE_OVERWRITE,
    CHOICE_SKIP,
    POLICY_CHOICES,
    choose_policy,
    decide_on_conflicts,
    policy_from_choice,
)

CONFLICTED = [Path("/home/u/.zshrc")]


class TestPolicyFromChoice:
    def test_mapping(self):
        assert policy_from_choice(CHOICE_BACKUP) is Policy.BACKUP
        assert policy_from_choice(CHOICE_SKIP) is Policy.SKIP
        assert policy_from_choice(CHOICE_CANCEL) is None

    def test_overwrite_needs_confirmation(self):
        assert policy_from_choice(CHOICE_OVERWRITE) is None
        assert policy_from_choice(CHOICE_OVERWRITE, overwrite_confirmed=True) is Policy.OVERWRITE


class TestChoosePolicy:
    @pytest.mark.parametrize("requested", ["backup", "skip", "overwrite", Policy.SKIP])
    def test_concrete_policy_never_prompts(self, requested):
        prompter = AutoPrompter()
        assert choose_policy(requested, CONFLICTED, prompter) is Policy(requested)
        assert prompter.asked == []

    def test_ask_without_conflicts_backs_up(self):
        prompter = AutoPrompter()
        assert choose_policy("ask", [], prompter) is Policy.BACKUP
        assert prompter.asked == []

    @pytest.mark.parametrize(
        "answers, expected",
        [
            ([CHOICE_BACKUP], Policy.BACKUP),
            ([CHOICE_SKIP], Policy.SKIP),
            ([CHOICE_OVERWRITE, True], Policy.OVERWRITE),
            ([CHOICE_OVERWRITE, False], None),
            ([CHOICE_CANCEL], None),
        ],
    )
    def test_ask_with_conflicts(self, answers, expected):
        prompter = AutoPrompter(answers=answers)
        assert choose_policy("ask", CONFLICTED, prompter, component="zsh") is expected
        assert "zsh" in prompter.asked[0]

    def test_non_interactive_default_is_backup(self):
        assert POLICY_CHOICES[0] == CHOICE_BACKUP
        assert choose_policy("ask", CONFLICTED, AutoPrompter(assume_yes=True)) is Policy.BACKUP


class TestDecideOnConflicts:
    def test_no_conflicts_proceeds_without_asking(self, desktop_catalog):
        prompter = AutoPrompter()
        assert decide_on_conflicts(detect_conflicts(desktop_catalog, ["kitty"]), prompter)
        assert prompter.asked == []

    def test_default_is_abort(self, desktop_catalog):
        report = detect_conflicts(desktop_catalog, ["kitty", "alacritty"])
        assert decide_on_conflicts(report, AutoPrompter()) is False
        assert decide_on_conflicts(report, AutoPrompter(assume_yes=True)) is True


class TestConsolePrompter:
    def _prompter(self, replies):
        it = iter(replies)
        printed = []
        return ConsolePrompter(input_fn=lambda _prompt: next(it), output_fn=printed.append), printed

    def test_choice_by_number_after_invalid_input(self):
        prompter, printed = self._prompter(["9", "2"])
        assert prompter.ask_choice("Pick", ["a", "b"]) == "b"
        assert "Invalid option: 9" in printed

    def test_choice_by_label(self):
        prompter, _ = self._prompter([CHOICE_SKIP])
        assert prompter.ask_choice("Pick", POLICY_CHOICES) == CHOICE_SKIP

    def test_choice_needs_options(self):
        prompter, _ = self._prompter([])
        with pytest.raises(ValueError):
            prompter.ask_choice("Pick", [])

    @pytest.mark.parametrize(
        "replies, default, expected",
        [([""], True, True), ([""], False, False), (["y"], False, True), (["maybe", "no"], True, False)],
    )
    def test_yes_no(self, replies, default, expected):
        prompter, _ = self._prompter(replies)
        assert prompter.ask_yes_no("Continue?", default) is expected
