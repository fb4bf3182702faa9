"""Unit tests for the middleware pipeline."""

import pytest

from sunduk import MiddlewareError, MiddlewarePipeline


@pytest.mark.unit
def test_empty_pipeline_passes_proposed_value_through():
    """With no middleware the proposed value is the result"""
    pipeline = MiddlewarePipeline()

    assert pipeline.apply("old", "new") == "new"


@pytest.mark.unit
def test_middlewares_apply_in_registration_order():
    """Each middleware receives the previous middleware's result"""
    pipeline = MiddlewarePipeline()
    pipeline.add(lambda old, new: new + ["a"])
    pipeline.add(lambda old, new: new + ["b"])

    assert pipeline.apply([], ["start"]) == ["start", "a", "b"]


@pytest.mark.unit
def test_old_value_is_fixed_across_the_fold():
    """Every middleware sees the same old value"""
    pipeline = MiddlewarePipeline()
    seen = []

    def record(old, new):
        seen.append(old)
        return new + 1

    pipeline.add(record)
    pipeline.add(record)
    pipeline.add(record)

    assert pipeline.apply(10, 11) == 14
    assert seen == [10, 10, 10]


@pytest.mark.unit
def test_middleware_can_veto_by_returning_old_value():
    """Returning the old value cancels the change"""
    pipeline = MiddlewarePipeline()
    pipeline.add(lambda old, new: old)

    assert pipeline.apply("keep", "discard") == "keep"


@pytest.mark.unit
def test_add_returns_middleware_for_decorator_use():
    """add() returns its argument so it works as a decorator"""
    pipeline = MiddlewarePipeline()

    @pipeline.add
    def passthrough(old, new):
        return new

    assert passthrough(1, 2) == 2
    assert list(pipeline) == [passthrough]


@pytest.mark.unit
def test_add_rejects_non_callable():
    """Only callables can be middlewares"""
    with pytest.raises(TypeError):
        MiddlewarePipeline().add("not callable")


@pytest.mark.unit
def test_clear_empties_pipeline():
    """clear() removes every middleware"""
    pipeline = MiddlewarePipeline()
    pipeline.add(lambda old, new: old)

    pipeline.clear()
    pipeline.clear()

    assert len(pipeline) == 0
    assert pipeline.apply(1, 2) == 2


@pytest.mark.unit
def test_raising_middleware_is_wrapped_in_middleware_error():
    """Exceptions from a middleware surface as MiddlewareError with the cause chained"""
    pipeline = MiddlewarePipeline()
    pipeline.add(lambda old, new: new)

    def explode(old, new):
        raise ValueError("bad state")

    pipeline.add(explode)

    with pytest.raises(MiddlewareError) as info:
        pipeline.apply(1, 2)

    assert info.value.index == 1
    assert info.value.middleware is explode
    assert isinstance(info.value.__cause__, ValueError)


@pytest.mark.unit
def test_middleware_returning_none_is_an_error():
    """A middleware that forgets to return is reported"""
    pipeline = MiddlewarePipeline()
    pipeline.add(lambda old, new: None)

    with pytest.raises(MiddlewareError, match="returned None"):
        pipeline.apply({"a": 1}, {"a": 2})
