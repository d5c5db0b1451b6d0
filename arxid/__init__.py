"""
arxid
=====

Polynomial models of linear systems from input-output data, for control
design.

System identification
---------------------
arx.py
  func arx_regression (batch least squares, ARX/ARMAX)
  func arx
  func armax
  class ARX (fit, set_params, sim, predict)
rls.py
  class RLSEstimator (step)
  func rls_regression
  func rls

Model realization
-----------------
realization.py
  class TransferFunction
  func tf2ss (controllable and observable canonical forms)
  func append_noise
  func innovations
  func realize

Other helper functions
----------------------
regression.py
  func regressor
  func regression_matrix
  func shift_regressor
  func partition
  func multiple_regression
linalg.py
  func lagged
  func mldivide
  func mrdivide
  func vech
  func unvech
util.py
  exceptions MissingArgument, DimensionMismatch, InvalidOrder, IllConditioned
"""
