"""test/test_constraints.py - 等式约束与问题目录"""
import math

import numpy as np
import pytest

from constrained_bench.constraints import (ChainConstraint, Constraint,
                                           SphereConstraint,
                                           StewartConstraint, list_problems,
                                           parse_problem)
from constrained_bench.constraints.problems import (ProblemDescriptor,
                                                    make_chain_validity,
                                                    sphere_valid, with_delay)
from constrained_bench.errors import UnknownProblemError


class _Plane(Constraint):
    """z = 0, 只实现 function, 雅可比走中心差分."""

    def function(self, x):
        return np.array([x[2]])


class TestConstraintBase:

    def test_dimension_invariant(self):
        with pytest.raises(ValueError):
            _Plane(2, 3)
        with pytest.raises(ValueError):
            _Plane(3, -1)

    def test_function_is_abstract(self):
        with pytest.raises(TypeError):
            Constraint(3, 1)

    def test_finite_difference_jacobian(self):
        c = _Plane(3, 1)
        np.testing.assert_allclose(c.jacobian(np.array([0.2, -0.4, 1.5])),
                                   [[0.0, 0.0, 1.0]], atol=1e-6)
        ok, x = c.project(np.array([0.2, -0.4, 1.5]))
        assert ok
        assert x[2] == pytest.approx(0.0, abs=1e-4)

    def test_manifold_dim(self):
        c = SphereConstraint()
        assert c.ambient_dim == 3
        assert c.co_dim == 1
        assert c.manifold_dim == 2

    def test_project_to_sphere(self):
        c = SphereConstraint()
        ok, x = c.project(np.array([0.3, -2.0, 0.7]))
        assert ok
        assert np.linalg.norm(x) == pytest.approx(1.0, abs=1e-4)
        assert c.is_satisfied(x)

    def test_project_reports_failure_on_nan(self):
        c = SphereConstraint()
        ok, _ = c.project(np.array([np.nan, 0.0, 0.0]))
        assert not ok


class TestChainConstraint:

    def test_needs_three_links(self):
        with pytest.raises(ValueError):
            ChainConstraint(2)

    def test_dimensions(self):
        c = ChainConstraint(5)
        assert c.ambient_dim == 15
        assert c.co_dim == 6
        assert c.radius == pytest.approx(4.0)

    @pytest.mark.parametrize("links", [3, 5, 7])
    @pytest.mark.parametrize("direction", [1.0, -1.0])
    def test_configuration_on_manifold(self, links, direction):
        c = ChainConstraint(links)
        x = c.configuration(direction)
        assert c.distance(x) < 1e-9

    def test_analytic_jacobian_matches_finite_difference(self):
        c = ChainConstraint(4)
        rng = np.random.default_rng(0)
        x = c.configuration(1.0) + 0.1 * rng.normal(size=c.ambient_dim)
        np.testing.assert_allclose(c.jacobian(x), Constraint.jacobian(c, x),
                                   atol=1e-5)


class TestStewartConstraint:

    def test_needs_two_chains(self):
        with pytest.raises(ValueError):
            StewartConstraint(3, 1)

    def test_co_dimension(self):
        assert StewartConstraint(3, 2).co_dim == 3 * 2 + 1
        assert StewartConstraint(3, 4).co_dim == 3 * 4 + 4

    @pytest.mark.parametrize("chains", [2, 3, 4])
    def test_tilted_configuration_on_manifold(self, chains):
        c = StewartConstraint(3, chains)
        for tilt in (math.pi / 6, -math.pi / 6):
            assert c.distance(c.configuration(tilt)) < 1e-9

    def test_end_index(self):
        c = StewartConstraint(4, 3)
        assert c.end_index(0) == 3
        assert c.end_index(2) == 11


class TestValidity:

    def test_sphere_poles_valid(self):
        assert sphere_valid(np.array([0.0, 0.0, -1.0]))
        assert sphere_valid(np.array([0.0, 0.0, 1.0]))

    def test_sphere_wall_and_gap(self):
        # 赤道带是墙, 只有 |x| < 0.05 且 y < 0 的缝可通过
        assert not sphere_valid(np.array([1.0, 0.0, 0.0]))
        assert sphere_valid(np.array([0.0, -1.0, 0.0]))
        assert not sphere_valid(np.array([0.0, 1.0, 0.0]))

    def test_chain_self_collision(self):
        valid = make_chain_validity(3)
        stretched = np.array([1.0, 0, 0, 2.0, 0, 0, 3.0, 0, 0])
        folded = np.array([1.0, 0, 0, 0.1, 0, 0, 0.2, 0, 0])
        assert valid(stretched)
        assert not valid(folded)

    def test_with_delay_keeps_result(self):
        calls = []

        def fn(x):
            calls.append(x)
            return False

        assert with_delay(fn, 0.0) is fn
        delayed = with_delay(fn, 1e-4)
        assert delayed(np.zeros(3)) is False
        assert len(calls) == 1


class TestCatalog:

    def test_listing(self):
        assert list_problems() == ["chain", "sphere", "stewart"]

    def test_unknown_problem(self):
        with pytest.raises(UnknownProblemError, match="torus"):
            parse_problem("torus")

    def test_bad_parameters_are_configuration_errors(self):
        with pytest.raises(UnknownProblemError):
            parse_problem("chain", links=2)
        with pytest.raises(UnknownProblemError):
            parse_problem("stewart", chains=1)

    @pytest.mark.parametrize("name", ["sphere", "chain", "stewart"])
    def test_endpoints_satisfy_constraint_and_validity(self, name):
        p = parse_problem(name)
        assert isinstance(p, ProblemDescriptor)
        assert p.ambient_dimension >= p.co_dimension >= 0
        for x in (p.start, p.goal):
            assert p.constraint.is_satisfied(x)
            assert p.validity(x)

    def test_chain_descriptor(self):
        p = parse_problem("chain", links=7)
        assert p.links == 7
        assert p.ambient_dimension == 21
        assert p.parameters == {"links": 7}

    def test_descriptor_checks_endpoint_shape(self):
        with pytest.raises(ValueError):
            ProblemDescriptor("sphere", SphereConstraint(), sphere_valid,
                              np.zeros(2), np.zeros(3))
