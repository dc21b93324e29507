import io

from rich.console import Console

from issuetrends.progress import RichProgressTracker, TqdmProgressAdapter


class FakeResult:
    paper_count = 6
    tokens_extraction = 1200
    tokens_synthesis = 300
    cost_estimate = 0.0012
    failed_papers = ["p2"]
    extractions = [object()] * 5


def test_rich_tracker_records_batches_and_result():
    console = Console(file=io.StringIO(), width=100)
    tracker = RichProgressTracker("Journal Vol. 1", console=console)

    tracker(1, 6, "First paper")
    tracker(4, 6, "Fourth paper")
    tracker.finish(FakeResult())

    assert [b.current for b in tracker.batches] == [1, 4]
    assert tracker.status == "completed"
    assert tracker.token_usage == 1500
    assert tracker.details == "5 extracted, 1 failed"

    console.print(tracker._render())
    output = console.file.getvalue()
    assert "Fourth paper" in output
    assert "6/6 papers" in output


def test_tqdm_adapter_advances_to_batch_start():
    stream = io.StringIO()
    adapter = TqdmProgressAdapter("Journal", file=stream)

    adapter(1, 6, "First")
    adapter(4, 6, "Fourth")
    assert adapter._bar.n == 4

    adapter.finish(FakeResult())
    assert adapter._bar.n == 6
    adapter.stop()
    assert adapter._bar is None
