"""editing operations: code actions, rename, formatting, selection range

test classes:
- TestCodeAction: aggregation across clients, resolve, apply, cancel
- TestRename: sequential fallback through prepareRename
- TestFormatting: method choice and sequential clients
- TestSelectionRange: session stepping and invalidation
"""

import io

import pytest
from rich.console import Console

from lsp_fanout.errors import ErrorCodes, ValidationError
from lsp_fanout.lsp import ApplyTextEdits, ApplyWorkspaceEdit, RunCommand, SelectRange, Status
from lsp_fanout.utils.logging_utils import Logger, custom_theme

from conftest import DOC

CODE_ACTION = "textDocument/codeAction"
RESOLVE = "codeAction/resolve"
RENAME = "textDocument/rename"
PREPARE_RENAME = "textDocument/prepareRename"
FORMATTING = "textDocument/formatting"
RANGE_FORMATTING = "textDocument/rangeFormatting"
RANGES_FORMATTING = "textDocument/rangesFormatting"
SELECTION_RANGE = "textDocument/selectionRange"

EDIT = {"changes": {DOC: [{"range": {"start": {"line": 0, "character": 0}, "end": {"line": 0, "character": 1}}, "newText": "x"}]}}


def lsp_range(start_line, start_char, end_line, end_char):
    return {
        "start": {"line": start_line, "character": start_char},
        "end": {"line": end_line, "character": end_char},
    }


# ═══════════════════════════════════════════════════════════════════════════
# TestCodeAction
# ═══════════════════════════════════════════════════════════════════════════

class TestCodeAction:
    """code_action"""

    @pytest.mark.asyncio
    async def test_choice_keeps_its_client(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        b = harness.add_client(2, "beta", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Fix A", "edit": EDIT}])
        harness.transport.reply(b, CODE_ACTION, [{"title": "Fix\nB", "edit": EDIT}])
        harness.selector.choice = 1

        result = await harness.manager.code_action(ctx)

        call = harness.selector.calls[0]
        assert call["labels"] == ["Fix A [alpha]", "Fix\\nB [beta]"]
        assert call["prompt"] == "Code actions:"
        assert call["kind"] == "codeaction"
        assert result.status is Status.APPLIED
        effect = harness.applier.applied[0]
        assert isinstance(effect, ApplyWorkspaceEdit)
        assert effect.client is b

    @pytest.mark.asyncio
    async def test_single_action_still_asks(self, harness, ctx):
        """without apply=True even one action goes through the picker"""
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Only", "edit": EDIT}])

        await harness.manager.code_action(ctx)

        assert harness.selector.calls[0]["labels"] == ["Only"]

    @pytest.mark.asyncio
    async def test_apply_single_skips_picker(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        b = harness.add_client(2, "beta", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Extract", "kind": "refactor.extract", "edit": EDIT}])
        harness.transport.reply(b, CODE_ACTION, [{"title": "Fix", "kind": "quickfix", "edit": EDIT}])

        result = await harness.manager.code_action(ctx, action_context={"only": ["refactor"]}, apply=True)

        assert harness.selector.calls == []
        assert result.value.client is a
        assert harness.transport.params_of(1, CODE_ACTION)["context"] == {
            "only": ["refactor"],
            "triggerKind": 1,
            "diagnostics": [],
        }

    @pytest.mark.asyncio
    async def test_filter_rejecting_everything(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "A"}, {"title": "B"}])

        result = await harness.manager.code_action(ctx, filter=lambda action: False, apply=True)

        assert result.status is Status.EMPTY
        assert result.message == "No code actions available"
        assert harness.selector.calls == []

    @pytest.mark.asyncio
    async def test_cancel_applies_nothing(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "A", "edit": EDIT}, {"title": "B", "edit": EDIT}])
        harness.selector.choice = None

        result = await harness.manager.code_action(ctx)

        assert result.status is Status.CANCELLED
        assert harness.applier.applied == []

    @pytest.mark.asyncio
    async def test_resolve_goes_to_owner(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION, RESOLVE])
        b = harness.add_client(2, "beta", [CODE_ACTION, RESOLVE])
        harness.transport.reply(a, CODE_ACTION, [])
        harness.transport.reply(b, CODE_ACTION, [{"title": "Lazy", "data": 7}])
        harness.transport.reply(b, RESOLVE, {"title": "Lazy", "data": 7, "edit": EDIT})

        result = await harness.manager.code_action(ctx, apply=True)

        assert harness.transport.sent_to(RESOLVE) == [2]
        assert harness.transport.params_of(2, RESOLVE) == {"title": "Lazy", "data": 7}
        assert result.status is Status.APPLIED
        assert harness.applier.applied[0].edit == EDIT

    @pytest.mark.asyncio
    async def test_resolve_failure_without_edit(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION, RESOLVE])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Lazy"}])
        harness.transport.fail(a, RESOLVE, message="cannot resolve")

        result = await harness.manager.code_action(ctx, apply=True)

        assert result.status is Status.FAILED
        assert result.message == "-32603: cannot resolve"

    @pytest.mark.asyncio
    async def test_edit_then_command(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        command = {"title": "Run", "command": "do.it", "arguments": [1]}
        harness.transport.reply(a, CODE_ACTION, [{"title": "Both", "edit": EDIT, "command": command}])

        await harness.manager.code_action(ctx, apply=True)

        kinds = [type(e) for e in harness.applier.applied]
        assert kinds == [ApplyWorkspaceEdit, RunCommand]
        assert harness.applier.applied[1].command == command

    @pytest.mark.asyncio
    async def test_bare_command(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION, RESOLVE])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Organize", "command": "organize"}])

        await harness.manager.code_action(ctx, apply=True)

        assert harness.transport.sent_to(RESOLVE) == []
        effect = harness.applier.applied[0]
        assert isinstance(effect, RunCommand)
        assert effect.command == {"title": "Organize", "command": "organize"}

    @pytest.mark.asyncio
    async def test_disabled_action_reports_reason(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        harness.transport.reply(a, CODE_ACTION, [{"title": "Nope", "disabled": {"reason": "read-only file"}}])

        result = await harness.manager.code_action(ctx, apply=True)

        assert result.status is Status.FAILED
        assert result.message == "read-only file"
        assert harness.applier.applied == []

    @pytest.mark.asyncio
    async def test_diagnostics_and_range(self, harness, ctx):
        a = harness.add_client(1, "alpha", [CODE_ACTION])
        diagnostic = {"range": lsp_range(1, 0, 1, 4), "message": "unused"}

        await harness.manager.code_action(
            ctx,
            range={"start": (1, 0), "end": (2, 3)},
            diagnostics=lambda client: [diagnostic] if client.id == 1 else [],
        )

        params = harness.transport.params_of(1, CODE_ACTION)
        assert params["range"] == lsp_range(1, 0, 2, 3)
        assert params["context"]["diagnostics"] == [diagnostic]

    @pytest.mark.asyncio
    async def test_bad_range(self, harness, ctx):
        harness.add_client(1, "alpha", [CODE_ACTION])

        with pytest.raises(ValidationError):
            await harness.manager.code_action(ctx, range={"start": (1, 0)})


# ═══════════════════════════════════════════════════════════════════════════
# TestRename
# ═══════════════════════════════════════════════════════════════════════════

class TestRename:
    """sequential fallback"""

    @pytest.mark.asyncio
    async def test_first_prepare_fails_second_commits(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME])
        b = harness.add_client(2, "beta", [RENAME, PREPARE_RENAME])
        harness.transport.fail(a, PREPARE_RENAME, message="not a symbol")
        harness.transport.reply(b, PREPARE_RENAME, {"range": lsp_range(3, 2, 3, 7), "placeholder": "count"})
        harness.transport.reply(b, RENAME, EDIT)
        harness.prompter.answers = ["total"]

        result = await harness.manager.rename(ctx)

        assert harness.transport.sent_to(RENAME) == [2]
        assert harness.prompter.calls == [("New Name: ", "count")]
        assert harness.transport.params_of(2, RENAME)["newName"] == "total"
        assert result.status is Status.APPLIED
        effect = harness.applier.applied[0]
        assert isinstance(effect, ApplyWorkspaceEdit)
        assert effect.client is b

    @pytest.mark.asyncio
    async def test_prepare_is_sequential(self, harness, ctx):
        """the second client is not asked before the first answered"""
        a = harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME])
        b = harness.add_client(2, "beta", [RENAME, PREPARE_RENAME])
        seen = []
        harness.transport.reply(
            a, PREPARE_RENAME, None, delay=0.01,
            before_reply=lambda: seen.append(list(harness.transport.sent)),
        )
        harness.transport.reply(b, PREPARE_RENAME, lsp_range(3, 2, 3, 7))

        await harness.manager.rename(ctx, "renamed")

        assert [cid for cid, _, _ in seen[0]] == [1]

    @pytest.mark.asyncio
    async def test_client_without_prepare_commits(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME])
        b = harness.add_client(2, "beta", [RENAME])
        harness.transport.reply(a, PREPARE_RENAME, None)
        harness.transport.reply(b, RENAME, EDIT)
        harness.prompter.answers = ["v2"]

        result = await harness.manager.rename(ctx)

        assert harness.prompter.calls == [("New Name: ", "value")]
        assert harness.transport.sent_to(RENAME) == [2]
        assert result.value is b

    @pytest.mark.asyncio
    async def test_text_at_range_default(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME], encoding="utf-8")
        harness.transport.reply(a, PREPARE_RENAME, lsp_range(3, 2, 3, 7))
        harness.prompter.answers = [None]
        calls = []

        def text_at_range(range_, encoding):
            calls.append((range_, encoding))
            return "items"

        result = await harness.manager.rename(ctx, text_at_range=text_at_range)

        assert calls == [(lsp_range(3, 2, 3, 7), "utf-8")]
        assert harness.prompter.calls == [("New Name: ", "items")]
        assert result.status is Status.CANCELLED
        assert harness.transport.sent_to(RENAME) == []

    @pytest.mark.asyncio
    async def test_every_prepare_fails(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME])
        b = harness.add_client(2, "beta", [RENAME, PREPARE_RENAME])
        harness.transport.fail(a, PREPARE_RENAME)
        harness.transport.fail(b, PREPARE_RENAME, message="cannot rename keyword")

        result = await harness.manager.rename(ctx, "x")

        assert result.status is Status.FAILED
        assert result.message == "Error on prepareRename: cannot rename keyword"
        assert harness.transport.sent_to(RENAME) == []

    @pytest.mark.asyncio
    async def test_nothing_to_rename(self, harness, ctx):
        harness.add_client(1, "alpha", [RENAME, PREPARE_RENAME])

        result = await harness.manager.rename(ctx, "x")

        assert result.status is Status.EMPTY
        assert result.message == "Nothing to rename"

    @pytest.mark.asyncio
    async def test_given_name_skips_prompt(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME])
        harness.transport.reply(a, RENAME, EDIT)

        await harness.manager.rename(ctx, "renamed")

        assert harness.prompter.calls == []
        params = harness.transport.params_of(1, RENAME)
        assert params["newName"] == "renamed"
        assert params["position"] == {"line": 3, "character": 4}

    @pytest.mark.asyncio
    async def test_rename_error(self, harness, ctx):
        a = harness.add_client(1, "alpha", [RENAME])
        harness.transport.fail(a, RENAME, ErrorCodes.REQUEST_FAILED, "conflict")

        result = await harness.manager.rename(ctx, "renamed")

        assert result.status is Status.FAILED
        assert result.message == "[alpha] rename failed: -32803: conflict"

    @pytest.mark.asyncio
    async def test_name_filter(self, harness, ctx):
        harness.add_client(1, "alpha", [RENAME])
        b = harness.add_client(2, "beta", [RENAME])
        harness.transport.reply(b, RENAME, EDIT)

        await harness.manager.rename(ctx, "renamed", name="beta")

        assert harness.transport.sent_to(RENAME) == [2]

    @pytest.mark.asyncio
    async def test_no_capability(self, harness, ctx):
        harness.add_client(1, "alpha", [PREPARE_RENAME])

        result = await harness.manager.rename(ctx, "x")

        assert result.status is Status.NO_CAPABILITY


# ═══════════════════════════════════════════════════════════════════════════
# TestFormatting
# ═══════════════════════════════════════════════════════════════════════════

class TestFormatting:
    """format"""

    TEXT_EDITS = [{"range": lsp_range(0, 0, 0, 4), "newText": "    "}]

    @pytest.mark.asyncio
    async def test_clients_run_in_turn(self, harness, ctx):
        a = harness.add_client(1, "black", [FORMATTING])
        b = harness.add_client(2, "isort", [FORMATTING])
        seen = []
        harness.transport.reply(
            a, FORMATTING, self.TEXT_EDITS, delay=0.01,
            before_reply=lambda: seen.append(len(harness.transport.sent)),
        )
        harness.transport.reply(b, FORMATTING, self.TEXT_EDITS)

        result = await harness.manager.format(ctx)

        assert seen == [1]
        assert result.status is Status.APPLIED
        assert [e.client.name for e in harness.applier.applied] == ["black", "isort"]
        assert all(isinstance(e, ApplyTextEdits) and e.document == DOC for e in harness.applier.applied)
        assert harness.transport.params_of(1, FORMATTING) == {
            "textDocument": {"uri": DOC},
            "options": {"tabSize": 4, "insertSpaces": True},
        }

    @pytest.mark.asyncio
    async def test_range_and_ranges(self, harness, ctx):
        harness.add_client(1, "fmt", [RANGE_FORMATTING, RANGES_FORMATTING])

        await harness.manager.format(ctx, range={"start": (0, 0), "end": (2, 0)})
        await harness.manager.format(
            ctx,
            range=[{"start": (0, 0), "end": (1, 0)}, {"start": (5, 0), "end": (6, 0)}],
            formatting_options={"tabSize": 2},
        )

        assert harness.transport.params_of(1, RANGE_FORMATTING)["range"] == lsp_range(0, 0, 2, 0)
        ranges_params = harness.transport.params_of(1, RANGES_FORMATTING)
        assert ranges_params["ranges"] == [lsp_range(0, 0, 1, 0), lsp_range(5, 0, 6, 0)]
        assert ranges_params["options"]["tabSize"] == 2

    @pytest.mark.asyncio
    async def test_no_matching_servers(self, harness, ctx):
        harness.add_client(1, "fmt", [FORMATTING])

        result = await harness.manager.format(ctx, name="other")

        assert result.status is Status.NO_CAPABILITY
        assert result.message == "[LSP] Format request failed, no matching language servers."

    @pytest.mark.asyncio
    async def test_sync_timeout_and_partial_failure(self, harness, ctx):
        a = harness.add_client(1, "slow", [FORMATTING])
        b = harness.add_client(2, "fast", [FORMATTING])
        harness.transport.reply(a, FORMATTING, self.TEXT_EDITS, delay=5)
        harness.transport.reply(b, FORMATTING, self.TEXT_EDITS)

        result = await harness.manager.format(ctx, async_=False, timeout_ms=20)

        assert result.status is Status.APPLIED
        assert result.message == "[LSP][slow] -32803: timeout"
        assert [e.client.name for e in harness.applier.applied] == ["fast"]

    @pytest.mark.asyncio
    async def test_client_filter(self, harness, ctx):
        harness.add_client(1, "a", [FORMATTING])
        harness.add_client(2, "b", [FORMATTING])

        result = await harness.manager.format(ctx, client_id=2)

        assert harness.transport.sent_to(FORMATTING) == [2]
        assert result.status is Status.EMPTY

    @pytest.mark.asyncio
    async def test_failure_summary_is_reported_once(self, harness, ctx):
        """a failed format is logged like other operations, nothing is re-applied"""
        buffer = io.StringIO()
        Logger.instance(console=Console(file=buffer, width=200, theme=custom_theme))
        a = harness.add_client(1, "black", [FORMATTING])
        b = harness.add_client(2, "isort", [FORMATTING])
        harness.transport.fail(a, FORMATTING, ErrorCodes.INTERNAL_ERROR, "crashed")
        harness.transport.reply(b, FORMATTING, [])

        result = await harness.manager.format(ctx)

        assert result.status is Status.FAILED
        assert harness.applier.applied == []
        assert buffer.getvalue().count("WARNING: [LSP][black] -32603: crashed") == 1


# ═══════════════════════════════════════════════════════════════════════════
# TestSelectionRange
# ═══════════════════════════════════════════════════════════════════════════

class TestSelectionRange:
    """selection_range sessions"""

    WORD = lsp_range(3, 4, 3, 9)
    EMPTY = lsp_range(3, 9, 3, 9)
    LINE = lsp_range(3, 0, 3, 20)
    BLOCK = lsp_range(2, 0, 6, 0)

    def chain(self):
        return [{
            "range": self.WORD,
            "parent": {"range": self.EMPTY, "parent": {"range": self.LINE, "parent": {"range": self.BLOCK}}},
        }]

    @pytest.mark.asyncio
    async def test_expand_and_shrink(self, harness, ctx):
        a = harness.add_client(1, "alpha", [SELECTION_RANGE])
        harness.transport.reply(a, SELECTION_RANGE, self.chain())

        first = await harness.manager.selection_range(ctx, 1)
        session = first.value
        assert session.ranges == [self.WORD, self.LINE, self.BLOCK]
        assert harness.transport.params_of(1, SELECTION_RANGE) == {
            "textDocument": {"uri": DOC},
            "positions": [{"line": 3, "character": 4}],
        }

        second = await harness.manager.selection_range(ctx, 1, session)
        third = await harness.manager.selection_range(ctx, 5, session)
        fourth = await harness.manager.selection_range(ctx, -1, session)

        assert len(harness.transport.sent) == 1
        ranges = [r.effects[0].range for r in (first, second, third, fourth)]
        assert ranges == [self.WORD, self.LINE, self.BLOCK, self.LINE]
        assert all(isinstance(e, SelectRange) for e in harness.applier.applied)

    @pytest.mark.asyncio
    async def test_initial_direction_clamps(self, harness, ctx):
        a = harness.add_client(1, "alpha", [SELECTION_RANGE])
        harness.transport.reply(a, SELECTION_RANGE, self.chain())

        result = await harness.manager.selection_range(ctx, 10)

        assert result.value.index == 3
        assert result.effects[0].range == self.BLOCK

    @pytest.mark.asyncio
    async def test_invalidated_session_requests_again(self, harness, ctx):
        a = harness.add_client(1, "alpha", [SELECTION_RANGE])
        harness.transport.reply(a, SELECTION_RANGE, self.chain())

        session = (await harness.manager.selection_range(ctx, 1)).value
        session.invalidate()
        result = await harness.manager.selection_range(ctx, 1, session)

        assert not session.valid
        assert len(harness.transport.sent) == 2
        assert result.value is not session

    @pytest.mark.asyncio
    async def test_only_first_client_is_asked(self, harness, ctx):
        harness.add_client(1, "alpha", [SELECTION_RANGE])
        harness.add_client(2, "beta", [SELECTION_RANGE])

        result = await harness.manager.selection_range(ctx, 1)

        assert harness.transport.sent_to(SELECTION_RANGE) == [1]
        assert result.status is Status.EMPTY

    @pytest.mark.asyncio
    async def test_error(self, harness, ctx):
        a = harness.add_client(1, "alpha", [SELECTION_RANGE])
        harness.transport.fail(a, SELECTION_RANGE)

        result = await harness.manager.selection_range(ctx, 1)

        assert result.status is Status.FAILED
