import warnings


class TensorDiffWarning(Warning):
    'Base class for warnings from tensordiff.'


def warn(message, category=TensorDiffWarning, stacklevel=1):
    warnings.warn(message, category, stacklevel=stacklevel)


# vim:sw=4:sts=4:et
