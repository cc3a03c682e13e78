"""End-to-end tests of the slicing run over the fixture tree."""
import json

import pytest

from minrepro.pipeline import ABORT_UNMATCHED, ABORT_UNRESOLVED, SliceRequest, SourceTreeLoader, run_slice
from minrepro.reaper.manifest import SliceManifest

from support import copy_fixtures

SIMPLE = 'com/example/Simple.java'
HELPER = 'com/example/Helper.java'
UNRELATED = 'com/example/Unrelated.java'
OUTER = 'com/example/Outer.java'
PRINTER = 'com/example/Printer.java'


@pytest.fixture
def source_root(tmp_path):
    return copy_fixtures(tmp_path / 'src')


def request_for(root, files, methods, **options):
    return SliceRequest(root=root, target_files=files, target_methods=methods,
                        output_dir=root.parent / 'out', **options)


class TestSimpleScenario:
    @pytest.fixture
    def result(self, source_root):
        return run_slice(request_for(source_root, [SIMPLE, HELPER, UNRELATED], ['com.example.Simple#bar()']))

    def test_root_and_used(self, result):
        assert result.collection.root == {'com.example.Simple#bar()'}
        assert result.collection.used == {
            'com.example.Simple#helper()',
            'com.example.Simple.counter',
            'com.example.Helper#Helper()',
            'com.example.Helper#run(int)',
        }

    def test_target_body_is_intact(self, result, source_root):
        original = (source_root / SIMPLE).read_text()
        sliced = (source_root.parent / 'out' / SIMPLE).read_text()
        start = original.index('    // Calls into Helper')
        end = original.index('    private void helper()')
        assert original[start:end] in sliced
        assert 'private void helper() {\n        counter++;\n    }' in sliced
        assert 'import java.util.List;' in sliced
        for gone in ('label', 'unrelated', 'unusedStatic', 'public Simple()', 'Not reachable'):
            assert gone not in sliced

    def test_used_declarations_are_kept(self, result, source_root):
        sliced = (source_root.parent / 'out' / HELPER).read_text()
        assert 'public Helper() {' in sliced
        assert 'public void run(int times)' in sliced
        assert 'run(String label)' not in sliced
        assert 'tick() {' not in sliced

    def test_unit_with_no_retained_members_is_dropped(self, result, source_root):
        out = source_root.parent / 'out'
        assert not (out / UNRELATED).exists()
        assert [p.as_posix() for p in result.emitted.skipped] == [UNRELATED]
        assert sorted(p.relative_to(out).as_posix() for p in result.emitted.written) == [HELPER, SIMPLE]

    def test_non_target_files_are_never_written(self, result, source_root):
        assert not (source_root.parent / 'out' / OUTER).exists()


def test_nested_type_scenario(source_root):
    result = run_slice(request_for(source_root, [OUTER], ['com.example.Outer#m()']))
    sliced = (source_root.parent / 'out' / OUTER).read_text()
    assert 'public void m() {\n        int x = 1;\n    }' in sliced
    assert 'static class Inner {' in sliced
    assert 'void n()' not in sliced
    assert 'other()' not in sliced
    assert result.emitted.written


def test_unmatched_targets_abort_before_writing(source_root):
    result = run_slice(request_for(source_root, [OUTER], ['com.example.Outer#m()', 'com.example.Outer#x()']))
    assert result.aborted
    assert result.abort_reason == ABORT_UNMATCHED
    assert result.collection.unmatched == ['com.example.Outer#x()']
    assert not (source_root.parent / 'out').exists()


class TestUnresolved:
    def test_reported_and_sliced_by_default(self, source_root):
        result = run_slice(request_for(source_root, [PRINTER], ['com.example.Printer#print(String)']))
        assert not result.aborted
        assert len(result.collection.unresolved) == 1
        sliced = (source_root.parent / 'out' / PRINTER).read_text()
        assert 'System.out.println(message);' in sliced
        assert 'unused()' not in sliced

    def test_strict_mode_aborts(self, source_root):
        result = run_slice(request_for(source_root, [PRINTER], ['com.example.Printer#print(String)'], strict=True))
        assert result.abort_reason == ABORT_UNRESOLVED
        assert result.emitted is None
        assert not (source_root.parent / 'out').exists()


def test_manifest(source_root):
    result = run_slice(request_for(source_root, [SIMPLE, UNRELATED], ['com.example.Simple#bar()'],
                                   write_manifest=True))
    assert result.manifest_path == source_root.parent / 'out' / SliceManifest.FILENAME

    data = json.loads(result.manifest_path.read_text(encoding='utf-8'))
    assert data['targets'] == ['com.example.Simple#bar()']
    assert data['matches'] == {'com.example.Simple#bar()': 'com.example.Simple#bar()'}
    assert data['root'] == ['com.example.Simple#bar()']
    assert 'com.example.Helper#run(int)' in data['used']
    units = {u['path']: u for u in data['units']}
    assert units[SIMPLE]['status'] == 'written'
    assert units[UNRELATED]['status'] == 'empty'
    removed = [r['signatures'] for r in units[SIMPLE]['removed']]
    assert ['com.example.Simple.label'] in removed
    assert SliceManifest(source_root.parent / 'out').read() == data


def test_missing_target_file(source_root):
    with pytest.raises(FileNotFoundError):
        run_slice(request_for(source_root, ['com/example/Nope.java'], ['com.example.Nope#x()']))


def test_missing_root(tmp_path):
    with pytest.raises(FileNotFoundError):
        run_slice(request_for(tmp_path / 'absent', [SIMPLE], ['com.example.Simple#bar()']))


def test_output_inside_root_is_not_indexed(source_root):
    request = request_for(source_root, [OUTER], ['com.example.Outer#m()'])
    request.output_dir = source_root / 'sliced'
    run_slice(request)
    assert (source_root / 'sliced' / OUTER).exists()

    _, others = SourceTreeLoader(source_root).load([OUTER], '**/*.java', exclude=request.output_dir.resolve())
    paths = [unit.relative_path.as_posix() for unit in others]
    assert SIMPLE in paths
    assert not any(path.startswith('sliced/') for path in paths)
