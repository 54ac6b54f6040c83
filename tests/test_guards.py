from tensordiff import guards
from tensordiff.tderiv import TensorDeriv
from tensordiff.testing import TestCase


class reduce_equalities(TestCase):

    def test_empty(self):
        self.assertEqual(guards.reduce_equalities([], {'i'}), ({}, []))

    def test_trivial(self):
        self.assertEqual(guards.reduce_equalities([('i', 'i'), ('k', 'k')], {'i'}), ({}, []))

    def test_unprotected(self):
        self.assertEqual(guards.reduce_equalities([('k', 'l')], set()), ({'l': 'k'}, []))

    def test_protected_representative(self):
        self.assertEqual(guards.reduce_equalities([('k', 'i')], {'i'}), ({'k': 'i'}, []))

    def test_residual(self):
        self.assertEqual(guards.reduce_equalities([('i', 'j')], {'i', 'j'}), ({}, [('i', 'j')]))

    def test_transitive(self):
        substitution, residual = guards.reduce_equalities([('i', 'k'), ('k', 'l'), ('l', 'j')], {'i', 'j'})
        self.assertEqual(substitution, {'k': 'i', 'l': 'i'})
        self.assertEqual(residual, [('i', 'j')])

    def test_classes(self):
        substitution, residual = guards.reduce_equalities([('k', 'i'), ('m', 'n'), ('l', 'k')], {'i', 'n'})
        self.assertEqual(substitution, {'k': 'i', 'l': 'i', 'm': 'n'})
        self.assertEqual(residual, [])

    def test_idempotent(self):
        for pairs, protected in (
                ([('i', 'j'), ('j', 'k')], {'i', 'k'}),
                ([('i', 'j'), ('k', 'l'), ('l', 'm')], {'i', 'j', 'k', 'm'}),
                ([('p', 'q'), ('q', 'r')], {'r', 'p', 'q'})):
            with self.subTest(pairs=pairs):
                substitution, residual = guards.reduce_equalities(pairs, protected)
                self.assertEqual(guards.reduce_equalities(residual, protected), ({}, residual))

    def test_substitution_resolves(self):
        pairs = [('i', 'k'), ('k', 'l'), ('m', 'j'), ('n', 'p')]
        protected = {'i', 'j'}
        substitution, residual = guards.reduce_equalities(pairs, protected)
        for a, b in pairs:
            a, b = substitution.get(a, a), substitution.get(b, b)
            self.assertTrue(a == b or (a, b) in residual or (b, a) in residual)


class normalize(TestCase):

    def test_summed(self):
        td = guards.normalize(TensorDeriv.parse('dz[i]/dx[j] = y[k] * (k == j)'))
        self.assertEqual(str(td), 'dz[i] / dx[j] = y[j]')

    def test_bound(self):
        td = guards.normalize(TensorDeriv.parse('dz[i]/dx[j] = y[i] * (i == j)'))
        self.assertEqual(str(td), 'dz[i] / dx[j] = y[i] * (i == j)')

    def test_chained(self):
        td = guards.normalize(TensorDeriv.parse('dz[i]/dx[k] = 1 * (i == j) * (j == k)'))
        self.assertEqual(str(td), 'dz[i] / dx[k] = 1 * (i == k)')

    def test_duplicate(self):
        td = guards.normalize(TensorDeriv.parse('dz[i]/dx[j] = 1 * (i == j) * (j == i)'))
        self.assertEqual(td.guards, TensorDeriv.parse('dz[i]/dx[j] = 1 * (i == j)').guards)

    def test_method(self):
        td = TensorDeriv.parse('dz[i]/dx[j] = y[k] * (k == j)')
        self.assertEqual(td.normalized(), guards.normalize(td))
