from tensordiff import testing, warnings


class categories(testing.TestCase):

    def test_warn(self):
        with self.assertWarns(warnings.TensorDiffWarning):
            warnings.warn('test')

    def test_error(self):
        with self.assertRaises(warnings.TensorDiffWarning):
            warnings.warn('test')
