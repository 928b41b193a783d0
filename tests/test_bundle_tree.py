"""Directory tree rendering tests."""

from cntx.bundles.tree import build_tree, render_ascii_tree, render_xml_tree


def test_directories_sort_before_files_case_insensitively(make_record) -> None:
    records = [
        make_record("zeta.ts"),
        make_record("Alpha.ts"),
        make_record("src/b.ts"),
        make_record("lib/a.ts"),
    ]

    tree = build_tree(records)

    assert [child.name for child in tree.children] == ["lib", "src", "Alpha.ts", "zeta.ts"]


def test_ascii_tree_uses_connectors_tags_and_summary(make_record) -> None:
    records = [
        make_record("src/app.ts"),
        make_record("src/lib/util.ts"),
        make_record("README.md"),
    ]
    tree = build_tree(records, {"src/app.ts": ["core", "api"]})

    rendered = render_ascii_tree(tree, len(records), "demo")

    assert rendered.splitlines() == [
        "demo/",
        "├── src/",
        "│   ├── lib/",
        "│   │   └── util.ts",
        "│   └── app.ts [core,api]",
        "└── README.md",
        "",
        "3 files, 2 directories",
    ]


def test_xml_tree_escapes_names_and_lists_tags(make_record) -> None:
    tree = build_tree([make_record("docs/a&b.md", "hello", tags=["docs"])])

    rendered = render_xml_tree(tree)

    assert rendered.startswith("<directoryTree>")
    assert '<directory name="docs" path="docs">' in rendered
    assert 'name="a&amp;b.md"' in rendered
    assert 'size="5"' in rendered
    assert "<tags>docs</tags>" in rendered
    assert rendered.endswith("</directoryTree>")
