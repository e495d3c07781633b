import pytest

import numpy as np
from scipy.sparse import csr_matrix

import latticemodels as lm
from latticemodels.constants import pauli
from latticemodels.support.sparse import SparseMatrixBuilder


def is_hermitian(matrix):
    return abs(matrix - matrix.conj().T).max() < 1e-12


def test_api(square2x2):
    model = lm.Model(square2x2)
    assert model.lattice is square2x2
    assert model.internal_dim == 1
    assert isinstance(model.field, lm.NoField)
    assert model.boundaries is None
    assert model.size == 4

    # empty sequences are no-ops
    model.add(())
    model.add([])
    assert model.hamiltonian.nnz == 0

    with pytest.raises(RuntimeError) as excinfo:
        model.add(None)
    assert "None" in str(excinfo.value)

    with pytest.raises(TypeError):
        lm.Model(square2x2, field="strong")


def test_report(square2x2):
    model = lm.Model(square2x2, lm.Translation([1, 0]), lm.Translation([0, 1]))
    report = model.report()
    assert "4 lattice sites" in report
    assert "8 non-zero values" in report

    zero = lm.Model(square2x2, 0, (0, lm.Translation([1, 0])))
    assert zero.hamiltonian.nnz == 0
    assert "0 non-zero values" in zero.report()

    cancelled = lm.build_hamiltonian(square2x2, (1, lm.Translation([1, 0])),
                                     (-1, lm.Translation([1, 0])))
    assert cancelled.nnz == 0


def test_hamiltonian_is_cached(square2x2):
    model = lm.Model(square2x2, lm.Translation([1, 0]))
    assert model.hamiltonian is model.hamiltonian

    old = model.hamiltonian
    model.add(lm.Translation([0, 1]))
    assert model.hamiltonian is not old
    assert model.hamiltonian.nnz == 8


def test_two_site_chain():
    hamiltonian = lm.tightbinding_hamiltonian(lm.square_lattice(2))
    assert isinstance(hamiltonian, csr_matrix)
    assert hamiltonian.dtype == np.complex128
    assert pytest.fuzzy_equal(hamiltonian.toarray(), [[0, 1], [1, 0]])


def test_open_boundaries():
    hamiltonian = lm.hoppings(lm.square_lattice(3), lm.Translation([1]))
    assert hamiltonian.nnz == 4
    assert pytest.fuzzy_equal(hamiltonian.toarray(), [[0, 1, 0], [1, 0, 1], [0, 1, 0]])


def test_periodic_ring():
    lattice = lm.square_lattice(4)
    bc = lm.BoundaryConditions(lm.PeriodicBoundary([4]))
    hamiltonian = lm.tightbinding_hamiltonian(lattice, boundaries=bc).toarray()
    expected = np.roll(np.eye(4), 1, axis=1) + np.roll(np.eye(4), -1, axis=1)
    assert pytest.fuzzy_equal(hamiltonian, expected)


def test_twisted_ring():
    theta = 0.3
    lattice = lm.square_lattice(4)
    bc = lm.BoundaryConditions(lm.TwistedBoundary([4], theta))
    hamiltonian = lm.tightbinding_hamiltonian(lattice, boundaries=bc)
    assert hamiltonian[3, 0] == pytest.approx(np.exp(-1j * theta))
    assert hamiltonian[0, 3] == pytest.approx(np.exp(1j * theta))
    assert hamiltonian[0, 1] == pytest.approx(1)
    assert is_hermitian(hamiltonian)


@pytest.mark.parametrize("field", [lm.LandauGauge(0.1), lm.SymmetricGauge(0.1)],
                         ids=["landau", "symmetric"])
def test_plaquette_flux(field):
    """The product of hoppings around a plaquette doesn't depend on the gauge"""
    h = lm.tightbinding_hamiltonian(lm.square_lattice(2, 2), field=field).toarray()
    loop = h[0, 1] * h[1, 3] * h[3, 2] * h[2, 0]
    assert loop == pytest.approx(np.exp(-2j * np.pi * 0.1))


def test_peierls_phase(generic2x2):
    field = lm.LandauGauge(0.25)
    hamiltonian = lm.hoppings(generic2x2, lm.Translation([0, 1]), field=field)
    # (1, 1) -> (1, 2): x = 1, dy = 1
    assert hamiltonian[0, 1] == pytest.approx(np.exp(-2j * np.pi * 0.25))
    # (2, 1) -> (2, 2): x = 2, dy = 1
    assert hamiltonian[2, 3] == pytest.approx(np.exp(-2j * np.pi * 0.5))
    assert hamiltonian[1, 0] == pytest.approx(np.exp(2j * np.pi * 0.25))


def test_hermitian_with_fields_and_boundaries():
    lattice = lm.square_lattice(4, 3)
    field = lm.LandauGauge(0.13) + lm.PointFlux(0.2, point=(2.5, 1.5))
    bc = lm.BoundaryConditions(lm.PeriodicBoundary([4, 0]), lm.TwistedBoundary([0, 3], 0.3))
    hamiltonian = lm.tightbinding_hamiltonian(lattice, t1=1, t2=0.5j, field=field,
                                              boundaries=bc)
    assert is_hermitian(hamiltonian)

    spinful = lm.build_hamiltonian(lattice, (1j * pauli.x + pauli.z, lm.Translation([1, 0])),
                                   (pauli.y, lm.Translation([1, 1])), 0.5 * pauli.z,
                                   internal_dim=2, field=field, boundaries=bc)
    assert spinful.shape == (24, 24)
    assert is_hermitian(spinful)


def test_non_finite_phase(square2x2):
    field = lm.MagneticField(lambda p: [np.nan, np.nan])
    with pytest.raises(RuntimeError) as excinfo:
        lm.tightbinding_hamiltonian(square2x2, field=field)
    assert "got NaN or Inf when finding the phase factor" in str(excinfo.value)


def test_selector():
    chain = lm.square_lattice(3)
    left_only = lm.hoppings(chain, lm.Translation([1]),
                            selector=lambda lattice, s1, s2: s1.coords[0] < 2)
    assert pytest.fuzzy_equal(left_only.toarray(), [[0, 1, 0], [1, 0, 0], [0, 0, 0]])

    adj = lm.AdjacencyMatrix(chain)
    adj[chain[1], chain[2]] = True
    right_only = lm.hoppings(chain, lm.Translation([1]), selector=adj)
    assert pytest.fuzzy_equal(right_only.toarray(), [[0, 0, 0], [0, 0, 1], [0, 1, 0]])


def test_second_and_third_neighbors():
    lattice = lm.square_lattice(3, 3)
    hamiltonian = lm.tightbinding_hamiltonian(lattice, t1=1, t2=0.5, t3=0.25).toarray()
    # (1, 1) -> (2, 1), (2, 2) and (3, 1)
    assert hamiltonian[0, 1] == pytest.approx(1)
    assert hamiltonian[0, 4] == pytest.approx(0.5)
    assert hamiltonian[0, 2] == pytest.approx(0.25)
    assert hamiltonian[0, 8] == 0
    assert np.count_nonzero(hamiltonian) == 2 * (12 + 8 + 6)


def test_missing_neighbors_warning():
    with pytest.warns(UserWarning) as record:
        hamiltonian = lm.tightbinding_hamiltonian(lm.square_lattice(2), t2=1)
    assert "no neighbors of order 2" in str(record[0].message)
    assert hamiltonian.nnz == 2


def test_onsite_terms(square2x2):
    x, y = lm.coord_values(square2x2)
    hamiltonian = lm.build_hamiltonian(square2x2, x)
    assert pytest.fuzzy_equal(hamiltonian.diagonal(), [1, 2, 1, 2])

    constant = lm.build_hamiltonian(square2x2, 0.5, internal_dim=2)
    assert pytest.fuzzy_equal(constant.toarray(), 0.5 * np.eye(8))

    scaled = lm.build_hamiltonian(square2x2, (pauli.z, 2), internal_dim=2)
    assert pytest.fuzzy_equal(scaled.diagonal(), [2, -2] * 4)

    spin_profile = lm.build_hamiltonian(square2x2, (pauli.z, x), internal_dim=2)
    assert pytest.fuzzy_equal(spin_profile.diagonal(), [1, -1, 2, -2, 1, -1, 2, -2])

    onsite_matrix = lm.build_hamiltonian(square2x2, pauli.x, internal_dim=2)
    assert pytest.fuzzy_equal(onsite_matrix.toarray(), np.kron(np.eye(4), pauli.x))


def test_lattice_and_full_operators(square2x2):
    lattice_op = np.arange(16).reshape(4, 4)
    hamiltonian = lm.build_hamiltonian(square2x2, lattice_op, internal_dim=2)
    assert pytest.fuzzy_equal(hamiltonian.toarray(), np.kron(lattice_op, np.eye(2)))

    full = lm.build_hamiltonian(square2x2, csr_matrix(3 * np.eye(8)), internal_dim=2)
    assert pytest.fuzzy_equal(full.toarray(), 3 * np.eye(8))

    combined = lm.build_hamiltonian(square2x2, lattice_op, 1.5)
    assert pytest.fuzzy_equal(combined.toarray(), lattice_op + 1.5 * np.eye(4))


def test_site_pairs(square2x2):
    s0, s3 = square2x2[0], square2x2[3]
    hamiltonian = lm.build_hamiltonian(square2x2, (s0, s3))
    assert hamiltonian[0, 3] == 1
    assert hamiltonian[3, 0] == 1
    assert hamiltonian.nnz == 2

    complex_hop = lm.build_hamiltonian(square2x2, (2j, (s0, s3)))
    assert complex_hop[0, 3] == 2j
    assert complex_hop[3, 0] == -2j

    # sites outside the lattice are skipped
    assert lm.build_hamiltonian(square2x2, (s0, lm.Site([9, 9]))).nnz == 0


def test_bond_tuples(square2x2):
    bonds = (lm.Translation([1, 0]), lm.Translation([0, 1]))
    from_tuple = lm.build_hamiltonian(square2x2, (1, bonds))
    assert pytest.fuzzy_equal(from_tuple, lm.tightbinding_hamiltonian(square2x2))

    model = lm.Model(square2x2)
    model.add([(1, bonds[0]), (1, bonds[1])])
    assert pytest.fuzzy_equal(model.hamiltonian, from_tuple)

    distance = lm.build_hamiltonian(square2x2, lm.pairs_by_distance(lambda r: 0 < r < 1.1))
    assert pytest.fuzzy_equal(distance, from_tuple)

    lower_dim = lm.build_hamiltonian(square2x2, lm.Translation([1]))
    assert pytest.fuzzy_equal(lower_dim, lm.build_hamiltonian(square2x2, bonds[0]))


def test_invalid_terms(square2x2):
    with pytest.raises(TypeError) as excinfo:
        lm.Model(square2x2, "hopping")
    assert "unsupported type str" in str(excinfo.value)

    with pytest.raises(RuntimeError) as excinfo:
        lm.Model(square2x2, np.ones((3, 3)))
    assert "doesn't match" in str(excinfo.value)

    with pytest.raises(RuntimeError) as excinfo:
        lm.Model(square2x2, np.ones(3))
    assert "expected a 2D matrix" in str(excinfo.value)

    with pytest.raises(RuntimeError) as excinfo:
        lm.Model(lm.square_lattice(2), np.ones((2, 2)), internal_dim=2)
    assert "ambiguous" in str(excinfo.value)

    with pytest.raises(RuntimeError) as excinfo:
        lm.Model(square2x2, (np.eye(3), lm.Translation([1, 0])), internal_dim=2)
    assert "does not match" in str(excinfo.value)

    with pytest.raises(TypeError) as excinfo:
        lm.Model(square2x2, ("op", lm.Translation([1, 0])))
    assert "unsupported on-site operator type" in str(excinfo.value)

    with pytest.raises(TypeError) as excinfo:
        lm.Model(square2x2, (1, "everywhere"))
    assert "unsupported on-lattice operator type" in str(excinfo.value)

    other = lm.LatticeValue(lm.square_lattice(4), [1, 2, 3, 4])
    with pytest.raises(RuntimeError) as excinfo:
        lm.Model(square2x2, other)
    assert "lattice mismatch" in str(excinfo.value)


def test_add_hoppings():
    chain = lm.square_lattice(3)
    builder = SparseMatrixBuilder(len(chain))
    lm.add_hoppings(builder, None, chain, 2, lm.Translation([1]))
    lm.add_diagonal(builder, 1, [0, 1, 0])
    expected = [[0, 2, 0], [2, 1, 2], [0, 2, 0]]
    assert pytest.fuzzy_equal(builder.tocsr().toarray(), expected)

    builder = SparseMatrixBuilder(len(chain))
    with pytest.raises(RuntimeError) as excinfo:
        lm.add_hoppings(builder, None, chain, 1, lm.Translation([1, 0]))
    assert "Incompatible dims" in str(excinfo.value)

    with pytest.raises(TypeError):
        lm.add_hoppings(builder, None, chain, 1, [1, 0])


def test_apply_field(square2x2):
    field = lm.SymmetricGauge(0.2)
    plain = lm.tightbinding_hamiltonian(square2x2)
    with_field = lm.tightbinding_hamiltonian(square2x2, field=field)
    assert pytest.fuzzy_equal(lm.apply_field(plain, square2x2, field), with_field)

    with pytest.raises(RuntimeError):
        lm.apply_field(plain, square2x2, field, internal_dim=2)


def test_operator_builder(generic2x2):
    field = lm.LandauGauge(0.25)
    builder = lm.OperatorBuilder(generic2x2, field=field)
    builder[generic2x2[0], generic2x2[1]] += 1
    builder[generic2x2[2], generic2x2[2]] += 3
    builder[generic2x2[2], generic2x2[2]] += 1
    matrix = builder.to_matrix()
    assert matrix[0, 1] == pytest.approx(np.exp(-2j * np.pi * 0.25))
    assert matrix[1, 0] == 0
    assert matrix[2, 2] == 4

    builder = lm.OperatorBuilder(generic2x2)
    with pytest.raises(TypeError):
        builder[generic2x2[0], generic2x2[1]] = 1
    with pytest.raises(IndexError):
        builder[generic2x2[0], lm.Site([7, 7])] += 1


def test_adjacency_matrix(square2x2):
    model = lm.Model(square2x2, lm.Translation([1, 0]), 0.5)
    assert model.adjacency_matrix == lm.AdjacencyMatrix.from_bonds(lm.Translation([1, 0]),
                                                                   lattice=square2x2)


def test_coord_operators(square2x2):
    x_op, y_op = lm.coord_operators(square2x2)
    assert pytest.fuzzy_equal(x_op.toarray(), np.diag([1, 2, 1, 2]))
    assert pytest.fuzzy_equal(y_op.toarray(), np.diag([1, 1, 2, 2]))

    x, _ = lm.coord_values(square2x2)
    spinful = lm.diagonal_operator(x * 2, internal_dim=2)
    assert spinful.shape == (8, 8)
    assert pytest.fuzzy_equal(spinful.diagonal(), [2, 2, 4, 4, 2, 2, 4, 4])
    assert pytest.fuzzy_equal(lm.diagonal_operator(x), lm.build_hamiltonian(square2x2, x))


def test_transition(generic2x2):
    one_way = lm.transition(generic2x2, generic2x2[0], generic2x2[3])
    assert one_way.nnz == 1
    assert one_way[0, 3] == 1

    by_index = lm.transition(generic2x2, 0, 3, op=pauli.x, internal_dim=2)
    expected = np.zeros((8, 8))
    expected[0:2, 6:8] = pauli.x
    assert pytest.fuzzy_equal(by_index.toarray(), expected)

    field = lm.LandauGauge(0.25)
    with_field = lm.transition(generic2x2, 0, 1, field=field)
    assert with_field[0, 1] == pytest.approx(np.exp(-2j * np.pi * 0.25))
    assert with_field[1, 0] == 0

    with pytest.raises(IndexError):
        lm.transition(generic2x2, generic2x2[0], lm.Site([5, 5]))
