"""Algebraic properties of the field and of split/combine, checked with hypothesis."""

from hypothesis import given, settings, strategies as st

from multikey import galois, shamir

elements = st.integers(min_value=0, max_value=255)
nonzero = st.integers(min_value=1, max_value=255)


@given(elements, elements)
def test_add_self_inverse(a: int, b: int) -> None:
    assert galois.add(a, galois.add(a, b)) == b


@given(elements, elements)
def test_mult_commutative(a: int, b: int) -> None:
    assert galois.mult(a, b) == galois.mult(b, a)


@given(elements, nonzero)
def test_div_undoes_mult(a: int, b: int) -> None:
    assert galois.div(galois.mult(a, b), b) == a


@given(elements, elements, elements)
def test_mult_distributes(a: int, b: int, c: int) -> None:
    assert galois.mult(a, galois.add(b, c)) == galois.add(galois.mult(a, b), galois.mult(a, c))


@settings(max_examples=50, deadline=None)
@given(st.data())
def test_split_combine_any_threshold_subset(data) -> None:
    secret = data.draw(st.binary(min_size=1, max_size=24), label="secret")
    parts = data.draw(st.integers(min_value=2, max_value=255), label="parts")
    threshold = data.draw(st.integers(min_value=2, max_value=min(parts, 12)), label="threshold")

    shares = shamir.split(secret, parts, threshold)
    assert len({s.x for s in shares}) == parts

    subset = data.draw(
        st.lists(st.sampled_from(shares), min_size=threshold, max_size=threshold,
                 unique_by=lambda s: s.x),
        label="subset",
    )
    assert shamir.combine(subset) == secret
