from tensordiff import rules, scalar
from tensordiff.parse import parse
from tensordiff.tderiv import TensorDeriv
from tensordiff.testing import TestCase
import threading


class to_tensor_rule(TestCase):

    def setUp(self):
        super().setUp()
        self.scalar_rules = scalar.ScalarRules()

    def promote(self, op, index_shapes, position):
        scalar_rule = self.scalar_rules.get(op, (float,) * (len(index_shapes) - 1), position)
        return rules.to_tensor_rule(scalar_rule, index_shapes, position)

    def test_elementwise(self):
        rule = self.promote('+', [('i',), ('i',), ('i',)], 0)
        self.assertEqual(rule.pattern, parse('Z[i] = X[i] + Y[i]'))
        self.assertDerivative(rule.deriv, 'dZ[i]/dX[j] = 1 * (i == j)')

    def test_contraction(self):
        rule = self.promote('*', [('i',), ('i', 'j'), ('j',)], 1)
        self.assertEqual(rule.pattern, parse('Z[i] = X[i,j] * Y[j]'))
        self.assertDerivative(rule.deriv, 'dZ[i]/dY[k] = X[i,k]')

    def test_matrix(self):
        rule = self.promote('*', [('i',), ('i', 'j'), ('j',)], 0)
        self.assertDerivative(rule.deriv, 'dZ[i]/dX[k,l] = Y[l] * (i == k)')

    def test_scalar(self):
        rule = self.promote('exp', [(), ()], 0)
        self.assertDerivative(rule.deriv, 'dZ/dX = exp(X)')

    def test_broadcast(self):
        rule = self.promote('*', [('i',), ('i',), ()], 1)
        self.assertDerivative(rule.deriv, 'dZ[i]/dY = X[i]')

    def test_literal_operand(self):
        rule = self.promote('^', [('i',), ('i',), ()], 0)
        self.assertDerivative(rule.deriv, 'dZ[i]/dX[j] = Y * X[i] ^ (Y - 1) * (i == j)')

    def test_fresh_indices(self):
        rule = self.promote('*', [('j', 'k'), ('j', 'i'), ('i', 'k')], 1)
        self.assertDerivative(rule.deriv, 'dZ[j,k]/dY[l,m] = X[j,l] * (k == m)')

    def test_shape_mismatch(self):
        with self.assertRaises(ValueError):
            rules.to_tensor_rule(self.scalar_rules.get('exp', (float,), 0), [('i',), ('i',), ('i',)], 0)


class registry(TestCase):

    def setUp(self):
        super().setUp()
        self.registry = rules.RuleRegistry()
        self.scalar_rules = scalar.ScalarRules()

    def test_empty(self):
        self.assertEqual(len(self.registry), 0)
        self.assertEqual(self.registry.keys(), ())
        self.assertIsNone(self.registry.find(parse('z[i] = exp(x[i])'), 0))

    def test_promote(self):
        rule = rules.promote(self.registry, self.scalar_rules.get('exp', (float,), 0), [('i',), ('i',)], 0)
        self.assertEqual(self.registry.keys(), (('exp', 0),))
        self.assertEqual(self.registry.rules('exp', 0), (rule,))
        self.assertIs(self.registry.find(parse('z[k] = exp(x[k])'), 0), rule)
        self.assertIsNone(self.registry.find(parse('z[k,l] = exp(x[k,l])'), 0))
        self.assertIsNone(self.registry.find(parse('z[k] = exp(x[k])'), 1))

    def test_push_duplicate(self):
        scalar_rule = self.scalar_rules.get('exp', (float,), 0)
        rule = rules.to_tensor_rule(scalar_rule, [('i',), ('i',)], 0)
        self.assertTrue(self.registry.push('exp', 0, rule))
        self.assertFalse(self.registry.push('exp', 0, rules.to_tensor_rule(scalar_rule, [('i',), ('i',)], 0)))
        self.assertEqual(len(self.registry), 1)

    def test_order(self):
        first = self.registry.define('Z[i] = f(X[i])', 'dZ[i]/dX[j] = 1 * (i == j)')
        second = self.registry.define('Z[i] = f(X[i])', 'dZ[i]/dX[j] = 2 * (i == j)')
        self.assertEqual(self.registry.rules('f', 0), (first, second))
        self.assertIs(self.registry.find(parse('z[i] = f(x[i])'), 0), first)

    def test_define(self):
        rule = self.registry.define('Z[i] = sum(X[i,j])', 'dZ[i]/dX[k,l] = 1 * (i == k)')
        self.assertEqual(self.registry.keys(), (('sum', 0),))
        self.assertIs(self.registry.find(parse('z[p] = sum(x[p,q])'), 0), rule)

    def test_define_position(self):
        self.registry.define('Z = dot(X[i], Y[i])', 'dZ/dY[j] = X[j]')
        self.assertEqual(self.registry.keys(), (('dot', 1),))

    def test_define_entity(self):
        rule = self.registry.define('Z = dot(X[i], Y[i])', TensorDeriv.parse('dZ/dX[j] = Y[j]'))
        self.assertEqual(self.registry.rules('dot', 0), (rule,))

    def test_define_invalid(self):
        with self.assertRaises(ValueError):
            self.registry.define('Z = dot(X[i], Y[i])', 'dW/dX[j] = Y[j]')
        with self.assertRaises(ValueError):
            self.registry.define('Z = dot(X[i], Y[i])', 'dZ/dV[j] = Y[j]')
        with self.assertRaises(ValueError):
            self.registry.define('Z = dot(X[i], Y[i])', 'Z/X[j] = Y[j]')
        with self.assertRaises(ValueError):
            self.registry.define('dot(X[i], Y[i])', 'dZ/dX[j] = Y[j]')

    def test_concurrent_promotion(self):
        scalar_rule = self.scalar_rules.get('*', (float, float), 0)
        def target():
            for n in range(10):
                rules.promote(self.registry, scalar_rule, [('i',), ('i', 'j'), ('j',)], 0)
        threads = [threading.Thread(target=target) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(self.registry), 1)
