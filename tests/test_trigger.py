import pytest

from policybot.common.trigger import Trigger


@pytest.mark.parametrize(
    "trigger, flags, expected",
    [
        (Trigger.COMMIT, Trigger.COMMIT, True),
        (Trigger.COMMIT | Trigger.LABEL, Trigger.COMMIT, True),
        (Trigger.COMMIT | Trigger.LABEL, Trigger.LABEL, True),
        (Trigger.ALL, Trigger.STATUS, True),
        (Trigger.STATIC, Trigger.COMMIT, False),
        (Trigger.ALL, Trigger.STATIC, False),
    ],
)
def test_trigger_matches(trigger, flags, expected):
    assert trigger.matches(flags) is expected


@pytest.mark.parametrize(
    "trigger, text",
    [
        (Trigger.STATIC, "Trigger(0x0=Static)"),
        (Trigger.COMMIT, "Trigger(0x1=Commit)"),
        (Trigger.COMMIT | Trigger.REVIEW | Trigger.STATUS, "Trigger(0x15=Commit|Review|Status)"),
    ],
)
def test_trigger_string(trigger, text):
    assert str(trigger) == text
    assert f"{trigger}" == text


def test_all_is_union_of_flags():
    flags = [
        Trigger.COMMIT,
        Trigger.COMMENT,
        Trigger.REVIEW,
        Trigger.LABEL,
        Trigger.STATUS,
        Trigger.PULL_REQUEST,
    ]
    union = Trigger.STATIC
    for flag in flags:
        union |= flag
        assert Trigger.ALL.matches(flag) is True
    assert union == Trigger.ALL
    assert Trigger.ALL.matches(Trigger.STATIC) is False
    assert Trigger.ALL.__str__().endswith("=Commit|Comment|Review|Label|Status|PullRequest)")


def test_or_with_static_is_identity():
    assert (Trigger.STATIC | Trigger.REVIEW) == Trigger.REVIEW
    assert Trigger.matches(Trigger.STATIC | Trigger.REVIEW, Trigger.REVIEW) is True
    assert Trigger.matches(Trigger.STATIC | Trigger.REVIEW, Trigger.COMMIT) is False
    assert Trigger.__str__(Trigger.STATIC | Trigger.REVIEW) == "Trigger(0x4=Review)"