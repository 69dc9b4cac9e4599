"""
lbmwind - streaming stage of a 3D Lattice Boltzmann wind solver.
"""
