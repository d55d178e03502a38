# policybot

Approval and disapproval policies for pull requests, written as YAML and
evaluated against the state of a pull request: its author, commits,
comments, reviews and the memberships and permissions of the people
involved.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Writing a policy

A policy file has two top-level keys. `policy` says how the approval
rules combine and, optionally, who may block a pull request;
`approval_rules` defines the rules themselves.

```yaml
policy:
  approval:
    - two-reviewers
    - or:
        - docs-only
        - security-team
  disapproval:
    requires:
      organizations: ["my-org"]

approval_rules:
  - name: two-reviewers
    requires:
      count: 2
      teams: ["my-org/reviewers"]
    options:
      invalidate_on_push: true
      ignore_update_merges: true

  - name: docs-only
    requires:
      count: 0

  - name: security-team
    requires:
      count: 1
      teams: ["my-org/security"]
    options:
      methods:
        comments: ["LGTM"]
        github_review: true
```

The entries under `approval` are combined with `and`. Any entry may
instead be an `and:` or `or:` holding its own non-empty list; nesting
deeper than ten levels is rejected. A malformed policy raises
`policybot.approval.parse.PolicyParseError`.

### Approval rules

A rule counts approvals from the people named under `requires`:
`users`, `teams` (as `org/team`), `organizations`, and `permissions`
(`admin`, `maintain`, `write`, `triage`, `read`; a user with at least
one of them qualifies). The older flags `admins` and
`write_collaborators` stand for the `admin` and `write` permissions.
`count` is the number of approvals needed; a count of zero approves at
once.

By default an approval is a comment containing `:+1:` or `👍`, or an
approving GitHub review; `options.methods` replaces this with
`comments`, `comment_patterns`, `github_review` and
`github_review_comment_patterns`. Each user counts once.

Other options:

- `allow_author`: the author of the pull request may approve.
- `allow_contributor`: the author and anyone who authored or committed a
  commit may approve. Without it, contributors other than the author
  cannot approve.
- `invalidate_on_push`: only approvals made after the latest pushed
  commit count.
- `ignore_edited_comments`: edited comments and reviews do not count.
- `ignore_update_merges`: merges made through the web that bring the
  base branch into the head branch are ignored when looking for
  contributors and pushes.
- `ignore_commits_by`: commits whose users all match these actors are
  ignored in the same way.
- `request_review`: `enabled` and `mode` (`all-users`, `random-users`,
  `teams`); a pending rule then carries a `ReviewRequestRule` in its
  result describing whom to ask.

### Disapproval

A disapproval blocks the pull request until the person who disapproved,
or someone else allowed to disapprove, revokes it later. By default
`:-1:`/`👎` comments and "changes requested" reviews disapprove, and
`:+1:`/`👍` comments and approving reviews revoke; `options.methods`
takes `disapprove` and `revoke` method sets to change this. With no
`requires`, nobody can disapprove and the disapproval part is skipped.

### Predicates

Rules and the disapproval policy take conditions as
`policybot.common.result.Predicate` objects in their `predicates` list.
These are attached in code; an `if:` section in the YAML is rejected.
A rule is skipped when one of its predicates is not satisfied; the
disapproval policy disapproves when one of its predicates is satisfied.

## Evaluating a policy

```python
from datetime import datetime, timezone

from policybot.policy import load_config, parse_policy
from policybot.pull import Comment, Context

with open("policy.yml", encoding="utf-8") as fh:
    config = load_config(fh.read())

evaluator = parse_policy(config)

prctx = Context(
    author_login="alice",
    comment_list=[
        Comment(
            author="bob",
            body="LGTM :+1:",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ),
    ],
    team_memberships={"bob": ["my-org/reviewers"]},
)

result = evaluator.evaluate(prctx)
print(result.status, result.status_description)
```

`policybot.pull.Context` holds the pull request data in memory:
`author_login`, `commit_list`, `comment_list`, `review_list`,
`team_memberships` and `org_memberships` (user to names) and
`collaborators` (user to `Permission`). Any other object with the
methods `author()`, `commits()`, `comments()`, `reviews()`,
`is_team_member(team, user)`, `is_org_member(org, user)` and
`collaborator_permission(user)` may be passed instead.

The result is a `policybot.common.result.Result` tree. Its `status` is
one of the `EvaluationStatus` values — skipped, pending, approved or
disapproved — and its `children` hold the results for the approval and
disapproval parts, down to each rule. A disapproval wins over any
approval. If looking up data fails, the error is carried in
`result.error` rather than raised.

`evaluator.trigger()` returns a `policybot.common.trigger.Trigger`
flag set naming the kinds of pull request events (commits, comments,
reviews, labels, statuses, pull request changes) that can change the
outcome, so a caller can skip re-evaluating when nothing relevant
happened.

## What this package does not do

It is a library only. It has no command, no server receiving webhooks,
and no client for the GitHub API: it does not fetch pull requests or
policy files, post statuses or send review requests. The caller
supplies the pull request data and acts on the result.
`policybot.policy.RemoteConfig` describes a policy kept in another
repository, but nothing in the package loads it. No built-in
predicates are provided.