"""
Unit tests for hidden space consumer detection.
"""
import pytest

from clutterscope.core.consumers import detect_hidden_consumers, classify_directory, KNOWN_CONSUMERS
from clutterscope.core.models import FileRecord, ConsumerCategory

MB = 1024 * 1024


class TestClassification:
    @pytest.mark.parametrize("name, category", [
        ("node_modules", ConsumerCategory.DEPENDENCY_CACHE),
        (".venv", ConsumerCategory.DEPENDENCY_CACHE),
        (".git", ConsumerCategory.VERSION_CONTROL),
        ("target", ConsumerCategory.BUILD_ARTIFACT),
        ("__pycache__", ConsumerCategory.BUILD_ARTIFACT),
        (".cache", ConsumerCategory.OTHER_KNOWN),
    ])
    def test_known_names(self, name, category):
        assert classify_directory(name).category == category

    @pytest.mark.parametrize("name", ["src", "Node_Modules", "node_modules_old", "gitlab", ""])
    def test_unknown_names_never_match(self, name):
        assert classify_directory(name) is None

    def test_every_entry_has_guidance(self):
        for kind in KNOWN_CONSUMERS.values():
            assert kind.description and kind.recommendation


class TestDetectHiddenConsumers:
    def test_single_node_modules_subtree(self):
        """Files totalling 250MB under one node_modules give one dependency-cache entry."""
        records = [
            FileRecord(f"/proj/web/node_modules/pkg{i}/index.js", 25 * MB) for i in range(10)
        ] + [FileRecord("/proj/web/app.js", 3 * MB)]

        consumers = detect_hidden_consumers(records)

        assert len(consumers) == 1
        consumer = consumers[0]
        assert consumer.subtree_path == "/proj/web/node_modules"
        assert consumer.category == ConsumerCategory.DEPENDENCY_CACHE
        assert consumer.aggregate_bytes == 250 * MB
        assert consumer.file_count == 10

    def test_nested_matches_count_once_under_outermost(self):
        records = [
            FileRecord("/p/node_modules/a/index.js", 100),
            FileRecord("/p/node_modules/a/node_modules/b/index.js", 50),
            FileRecord("/p/node_modules/a/.cache/x", 5),
            FileRecord("/p/app.js", 1),
        ]
        consumers = detect_hidden_consumers(records)
        assert len(consumers) == 1
        assert consumers[0].aggregate_bytes == 155
        assert consumers[0].file_count == 3

    def test_each_occurrence_is_reported(self):
        records = [
            FileRecord("/p/a/node_modules/x.js", 10),
            FileRecord("/p/b/node_modules/y.js", 30),
            FileRecord("/p/.git/objects/pack", 20),
        ]
        consumers = detect_hidden_consumers(records)
        assert [c.subtree_path for c in consumers] == ["/p/b/node_modules", "/p/.git", "/p/a/node_modules"]
        assert consumers[1].category == ConsumerCategory.VERSION_CONTROL

    def test_file_name_itself_is_not_a_directory_match(self):
        assert detect_hidden_consumers([FileRecord("/p/build", 10), FileRecord("/p/tmp", 10)]) == []

    def test_zero_byte_subtree_is_still_reported(self):
        consumers = detect_hidden_consumers([FileRecord("/p/__pycache__/m.pyc", 0)])
        assert len(consumers) == 1
        assert consumers[0].aggregate_bytes == 0

    def test_ancestors_above_the_records_are_not_matched(self):
        """Without a root, /tmp above the analyzed tree is not reported as a temp directory."""
        records = [FileRecord(f"/tmp/proj/node_modules/p{i}/i.js", 25 * MB) for i in range(10)]

        consumers = detect_hidden_consumers(records)

        assert len(consumers) == 1
        consumer = consumers[0]
        assert consumer.subtree_path == "/tmp/proj/node_modules"
        assert consumer.category == ConsumerCategory.DEPENDENCY_CACHE
        assert consumer.aggregate_bytes == 250 * MB
        assert consumer.file_count == 10

    def test_shared_ancestor_named_like_a_consumer_is_ignored(self):
        records = [FileRecord("/home/u/build/app/src/a.c", 10), FileRecord("/home/u/build/app/README", 5)]
        assert detect_hidden_consumers(records) == []

    def test_empty_input(self):
        assert detect_hidden_consumers([]) == []
        assert detect_hidden_consumers(iter([])) == []

    def test_root_components_are_not_matched(self):
        """Analyzing a directory that is itself named build does not flag everything."""
        records = [FileRecord("/work/build/src/a.c", 10), FileRecord("/work/build/dist/a.o", 20)]
        consumers = detect_hidden_consumers(records, root="/work/build")
        assert [c.subtree_path for c in consumers] == ["/work/build/dist"]

    def test_idempotent(self):
        records = [FileRecord("/p/target/debug/app", 10), FileRecord("/p/logs/a.log", 10)]
        assert detect_hidden_consumers(records) == detect_hidden_consumers(records)
