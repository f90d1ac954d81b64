from goalcrawl.crawler import FrontierItem, PriorityFrontier


def test_pop_returns_highest_priority_first():
    """Higher priority pops first regardless of push order."""
    frontier: PriorityFrontier[str] = PriorityFrontier()
    frontier.push("low", 0.1)
    frontier.push("high", 0.9)
    frontier.push("mid", 0.5)

    assert [frontier.pop(), frontier.pop(), frontier.pop()] == ["high", "mid", "low"]
    assert frontier.pop() is None


def test_equal_priorities_pop_in_push_order():
    """Ties are broken by insertion order."""
    frontier: PriorityFrontier[str] = PriorityFrontier()
    for name in ["a", "b", "c", "d"]:
        frontier.push(name, 0.5)
    frontier.push("top", 0.7)

    assert frontier.pop() == "top"
    assert [frontier.pop() for _ in range(4)] == ["a", "b", "c", "d"]


def test_mixed_sequence_always_pops_maximum():
    """Interleaved pushes and pops keep max-priority order."""
    frontier: PriorityFrontier[int] = PriorityFrontier()
    priorities = [0.3, 0.8, 0.8, 0.1, 0.6, 0.3, 0.95, 0.0]
    popped: list[float] = []
    for index, priority in enumerate(priorities):
        frontier.push(index, priority)
        if index % 3 == 2:
            peeked = frontier.peek()
            item = frontier.pop()
            popped.append(priorities[item])
            assert peeked == item

    remaining = []
    while not frontier.is_empty():
        remaining.append(priorities[frontier.pop()])
    assert remaining == sorted(remaining, reverse=True)


def test_items_are_not_compared():
    """Unorderable payloads with equal priority do not break the heap."""
    frontier: PriorityFrontier[FrontierItem] = PriorityFrontier()
    first = FrontierItem(url="https://example.com/a", depth=1, expected_value=0.5)
    second = FrontierItem(url="https://example.com/b", depth=1, expected_value=0.5)
    frontier.push(first, 0.5)
    frontier.push(second, 0.5)

    assert frontier.items() == [first, second]
    assert frontier.pop() is first


def test_len_peek_and_snapshot():
    frontier: PriorityFrontier[str] = PriorityFrontier()
    assert frontier.peek() is None

    frontier.push("x", 1.0)
    frontier.push("y", 2.0)
    assert len(frontier) == 2
    assert frontier.peek() == "y"

    frontier.pop()
    assert frontier.snapshot() == {"queue_size": 1, "pushed": 2, "popped": 1}

    frontier.pop()
    assert frontier.is_empty()
    assert frontier.size() == 0
