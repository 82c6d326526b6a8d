from __future__ import annotations

import pytest

from ikoma_mcp.gateway.security.origin import is_allowed_source


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/org/repo",
        "https://github.com/org/repo.git",
        "https://github.com/Org-Name/repo_name/",
    ],
)
def test_github_urls_are_allowed(url: str) -> None:
    assert is_allowed_source(url)


@pytest.mark.parametrize(
    "url",
    [
        "http://github.com/org/repo",
        "git@github.com:org/repo.git",
        "ssh://github.com/org/repo",
        "https://gitlab.com/org/repo",
        "https://github.com.evil.org/org/repo",
        "https://evil.org/github.com/org/repo",
        "https://github.com:8443/org/repo",
        "https://user:pw@github.com/org/repo",
        "https://github.com/org",
        "https://github.com/org/../other/repo",
        "https://github.com/org/repo?ref=main",
        "https://github.com/org/repo#frag",
        "https://github.com/-upload-pack/repo",
        "file:///etc/passwd",
        "",
    ],
)
def test_everything_else_is_rejected(url: str) -> None:
    assert not is_allowed_source(url)
