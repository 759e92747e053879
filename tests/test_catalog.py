from triggerci.catalog import ClassMarkerPolicy, discover
from triggerci.jenkins import JenkinsError

from fakes import MULTIBRANCH_CLASS, FakeJenkins, folder, pipeline


def team_tree() -> FakeJenkins:
    return FakeJenkins(
        roots=[folder("team1")],
        tree={
            "team1": folder("team1", [pipeline("service-a"), folder("nested")]),
            "team1/nested": folder("nested", [pipeline("service-b")]),
        },
    )


def test_discover_flattens_nested_folders():
    server = team_tree()

    catalog = discover(server, server.list_root_jobs())

    assert set(catalog) == {"team1/service-a", "team1/nested/service-b"}
    assert catalog["team1/nested/service-b"].name == "team1/nested/service-b"


def test_discover_is_idempotent_on_unchanged_tree():
    server = team_tree()
    roots = server.list_root_jobs()

    assert discover(server, roots) == discover(server, roots)


def test_folders_are_traversed_but_not_kept():
    server = team_tree()

    catalog = discover(server, server.list_root_jobs())

    assert "team1" not in catalog
    assert "team1/nested" not in catalog


def test_unexpanded_nodes_are_fetched_by_qualified_name():
    server = team_tree()

    discover(server, server.list_root_jobs())

    fetched = [c[1] for c in server.calls if c[0] == "fetch_job"]
    assert fetched == ["team1", "team1/service-a", "team1/nested", "team1/nested/service-b"]


def test_prepopulated_children_are_not_fetched():
    roots = [folder("team1", [pipeline("app", url="x")], url="team1-url")]
    tree = {"team1/app": pipeline("app", url="x")}
    server = FakeJenkins(roots=roots, tree=tree)

    catalog = discover(server, roots)

    assert list(catalog) == ["team1/app"]
    assert ("fetch_job", "team1") not in server.calls


def test_folder_fetch_failure_drops_only_that_branch():
    server = FakeJenkins(
        roots=[folder("broken"), folder("ok")],
        tree={
            "broken": JenkinsError("boom", status=500),
            "ok": folder("ok", [pipeline("app")]),
        },
    )

    catalog = discover(server, server.list_root_jobs())

    assert list(catalog) == ["ok/app"]


def test_filter_matches_substring_of_qualified_name():
    server = team_tree()

    catalog = discover(server, server.list_root_jobs(), filter_text="nested")

    assert list(catalog) == ["team1/nested/service-b"]


def test_filter_still_traverses_non_matching_folders():
    server = team_tree()

    catalog = discover(server, server.list_root_jobs(), filter_text="service-b")

    assert list(catalog) == ["team1/nested/service-b"]


def test_multibranch_branches_are_pipelines():
    server = FakeJenkins(
        roots=[folder("app", class_name=MULTIBRANCH_CLASS)],
        tree={"app": folder("app", [pipeline("master"), pipeline("PR-1")], class_name=MULTIBRANCH_CLASS)},
    )

    catalog = discover(server, server.list_root_jobs())

    assert set(catalog) == {"app/master", "app/PR-1"}


def test_custom_policy_replaces_class_marker():
    freestyle = folder("legacy", [], class_name="hudson.model.FreeStyleProject")
    server = FakeJenkins(roots=[freestyle, pipeline("modern")])

    default = discover(server, server.list_root_jobs())
    custom = discover(server, server.list_root_jobs(), is_pipeline=ClassMarkerPolicy(["Job", "Project"]))

    assert list(default) == ["modern"]
    assert set(custom) == {"legacy", "modern"}


def test_self_referential_folder_terminates():
    loop_url = "http://jenkins.local/job/loop/"
    server = FakeJenkins(
        roots=[folder("loop", url=loop_url)],
        tree={"loop": folder("loop", [folder("loop", url=loop_url), pipeline("app", url=loop_url + "job/app/")])},
    )

    catalog = discover(server, server.list_root_jobs())

    assert list(catalog) == ["loop/app"]
    assert server.count("fetch_job") == 2


def test_input_jobs_are_not_modified():
    roots = [folder("team1", [pipeline("app")])]
    server = FakeJenkins(roots=roots)

    catalog = discover(server, roots)

    assert roots[0].children[0].name == "app"
    assert catalog["team1/app"].name == "team1/app"
