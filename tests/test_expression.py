from tensordiff import expression
from tensordiff.expression import Literal, Indexed, Call, Guard, Equation
from tensordiff.parse import parse
from tensordiff.testing import TestCase


class types(TestCase):

    def test_type_checking(self):
        with self.assertRaises(ValueError):
            Indexed('x', ['i'])
        with self.assertRaises(ValueError):
            Call('f', (1,))
        with self.assertRaises(ValueError):
            Literal('1')

    def test_indices(self):
        self.assertEqual(parse('x[i,j] * y[j] * (i == k)').indices, ('i', 'j', 'j', 'i', 'k'))

    def test_names(self):
        self.assertEqual(parse('z[i] = f(x[i], y) + 2').names, frozenset({'z', 'x', 'y'}))

    def test_hashable(self):
        self.assertEqual(len({parse('x[i]'), Indexed('x', ('i',)), parse('x[j]')}), 2)


class format(TestCase):

    def assertFormat(self, tree, desired):
        self.assertEqual(str(tree), desired)

    def test_scalar(self):
        self.assertFormat(Indexed('x'), 'x')

    def test_indexed(self):
        self.assertFormat(Indexed('x', ('i', 'j')), 'x[i,j]')

    def test_negative_literal(self):
        self.assertFormat(Call('*', (Indexed('x'), Literal(-2))), 'x * (-2)')
        self.assertFormat(Call('*', (Literal(-2), Indexed('x'))), '(-2) * x')
        self.assertFormat(Literal(-2), '-2')

    def test_sum_in_product(self):
        self.assertFormat(Call('*', (Call('+', (Indexed('a'), Indexed('b'))), Indexed('c'))), '(a + b) * c')

    def test_subtract(self):
        self.assertFormat(Call('-', (Indexed('a'), Call('-', (Indexed('b'), Indexed('c'))))), 'a - (b - c)')
        self.assertFormat(Call('-', (Call('-', (Indexed('a'), Indexed('b'))), Indexed('c'))), 'a - b - c')

    def test_divide(self):
        self.assertFormat(Call('/', (Indexed('a'), Call('*', (Indexed('b'), Indexed('c'))))), 'a / (b * c)')

    def test_power(self):
        self.assertFormat(Call('^', (Call('^', (Indexed('a'), Indexed('b'))), Indexed('c'))), '(a ^ b) ^ c')

    def test_negate(self):
        self.assertFormat(Call('-', (Call('+', (Indexed('a'), Indexed('b'))),)), '-(a + b)')
        self.assertFormat(Call('-', (Call('*', (Indexed('a'), Indexed('b'))),)), '-a * b')

    def test_call(self):
        self.assertFormat(Call('f', (Indexed('x', ('i',)), Literal(2))), 'f(x[i], 2)')

    def test_guard(self):
        self.assertFormat(Call('*', (Literal(1), Guard('i', 'j'))), '1 * (i == j)')

    def test_equation(self):
        self.assertFormat(Equation(Indexed('z'), Call('+', (Indexed('x'), Indexed('y')))), 'z = x + y')


class match(TestCase):

    def test_names_and_indices(self):
        self.assertEqual(
            expression.match(parse('Z[i] = X[i,j] * Y[j]'), parse('z[k] = a[k,l] * b[l]'), 'ZXYij'),
            {'Z': 'z', 'X': 'a', 'Y': 'b', 'i': 'k', 'j': 'l'})

    def test_constants(self):
        self.assertEqual(expression.match(parse('exp(X)'), parse('exp(a)'), 'X'), {'X': 'a'})
        self.assertIsNone(expression.match(parse('exp(X)'), parse('log(a)'), 'X'))
        self.assertIsNone(expression.match(parse('X[i]'), parse('a[i,j]'), 'Xi'))

    def test_consistent(self):
        self.assertIsNone(expression.match(parse('X[i] * X[i]'), parse('a[i] * b[i]'), 'Xi'))
        self.assertIsNone(expression.match(parse('X[i] * Y[i]'), parse('a[i] * b[j]'), 'XYi'))

    def test_distinct_indices(self):
        self.assertIsNone(expression.match(parse('X[i] * Y[j]'), parse('a[k] * b[k]'), 'XYij'))

    def test_literal(self):
        self.assertEqual(expression.match(parse('X ^ Y'), parse('a ^ 2'), 'XY'), {'X': 'a', 'Y': Literal(2)})

    def test_allow_ex(self):
        self.assertIsNone(expression.match(parse('exp(x)'), parse('exp(a[i] * b)'), 'x'))
        self.assertEqual(expression.match(parse('exp(x)'), parse('exp(a[i] * b)'), 'x', allow_ex=True), {'x': parse('a[i] * b')})

    def test_guard(self):
        self.assertEqual(expression.match(parse('X[i] * (i == j)'), parse('a[k] * (k == l)'), 'Xij'), {'X': 'a', 'i': 'k', 'j': 'l'})


class substitute(TestCase):

    def test_rename(self):
        self.assertEqual(
            expression.substitute(parse('X[i,j] * (i == j)'), {'X': 'a', 'i': 'k', 'j': 'l'}),
            parse('a[k,l] * (k == l)'))

    def test_subexpression(self):
        self.assertEqual(expression.substitute(parse('y * x'), {'x': parse('a[i]'), 'y': Literal(2)}), parse('2 * a[i]'))

    def test_indexed_subexpression(self):
        with self.assertRaises(ValueError):
            expression.substitute(parse('x[i]'), {'x': parse('a + b')})


class reindex(TestCase):

    def test_simultaneous(self):
        self.assertEqual(expression.reindex(parse('x[i,j] * (j == k)'), {'i': 'j', 'j': 'i'}), parse('x[j,i] * (i == k)'))

    def test_names_untouched(self):
        self.assertEqual(expression.reindex(parse('i[i]'), {'i': 'j'}), parse('i[j]'))


class rewrite(TestCase):

    def test(self):
        self.assertEqual(
            expression.rewrite(parse('sin(a[i,j])'), parse('sin(x)'), parse('cos(x)'), 'x'),
            parse('cos(a[i,j])'))

    def test_mismatch(self):
        with self.assertRaises(ValueError):
            expression.rewrite(parse('sin(a)'), parse('cos(x)'), parse('-sin(x)'), 'x')


class simplify(TestCase):

    def assertSimplifies(self, s, desired):
        self.assertEqual(str(expression.simplify(parse(s))), desired)

    def test_ones(self):
        self.assertSimplifies('1 * x[i] * 1', 'x[i]')

    def test_zeros(self):
        self.assertSimplifies('0 + x[i] + 0', 'x[i]')
        self.assertSimplifies('x[i] * 0 * y', '0')

    def test_fold(self):
        self.assertSimplifies('2 * x * 3', '6 * x')
        self.assertSimplifies('2 + x + 3', 'x + 5')
        self.assertSimplifies('2 ^ 3', '8')
        self.assertSimplifies('6 / 3', '2')
        self.assertSimplifies('5 - 7', '-2')

    def test_flatten(self):
        self.assertSimplifies('a * (b * c)', 'a * b * c')
        self.assertSimplifies('a + (b + c)', 'a + b + c')

    def test_negate(self):
        self.assertSimplifies('-(-a)', 'a')
        self.assertSimplifies('0 - a', '-a')
        self.assertSimplifies('a - 0', 'a')

    def test_power(self):
        self.assertSimplifies('x ^ (2 - 1)', 'x')
        self.assertSimplifies('x ^ 0', '1')

    def test_guards_kept(self):
        self.assertSimplifies('1 * x[i] * (i == j)', 'x[i] * (i == j)')

    def test_combinators(self):
        self.assertEqual(expression.multiply(parse('x[i]'), Literal(1)), parse('x[i]'))
        self.assertEqual(expression.add(parse('x[i]'), Literal(0)), parse('x[i]'))
        self.assertEqual(expression.negate(Literal(2)), Literal(-2))
