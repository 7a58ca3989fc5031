from code_links import extract_code_links, is_code_link, primary_repository


def test_extracts_known_hosts_in_first_seen_order() -> None:
    text = (
        "Weights: https://huggingface.co/org/model. Code is available at "
        "https://github.com/org/repo, data at https://zenodo.org/record/123."
    )
    assert extract_code_links(text) == (
        "https://huggingface.co/org/model",
        "https://github.com/org/repo",
        "https://zenodo.org/record/123",
    )


def test_duplicates_are_dropped_case_insensitively() -> None:
    text = "see https://github.com/Org/Repo and https://github.com/org/repo."
    assert extract_code_links(text) == ("https://github.com/Org/Repo",)


def test_unknown_hosts_and_bare_domains_are_ignored() -> None:
    text = "http://example.org/code and https://github.com/ and https://gitlab.com/g/p"
    assert extract_code_links(text) == ("https://gitlab.com/g/p",)


def test_www_prefix_is_accepted() -> None:
    assert is_code_link("https://www.github.com/a/b")
    assert not is_code_link("ftp://github.com/a/b")


def test_primary_repository_prefers_github() -> None:
    links = ("https://gitlab.com/g/p", "https://github.com/a/b")
    assert primary_repository(links) == "https://github.com/a/b"
    assert primary_repository(("https://zenodo.org/record/1",)) is None


def test_no_links() -> None:
    assert extract_code_links("") == ()
