import numpy as np
import pickle

## Force this script to start in the main repo directory
import sys
import os
main_dir = os.path.dirname(os.path.abspath(__file__)) + '/..'
os.chdir(main_dir)
sys.path.append(main_dir)

from arxid.regression import shift_regressor
from arxid.rls import RLSEstimator, rls

###################
## Script config ##
###################
forgetting = [1, 0.99, 0.95]

# First-order plant whose pole jumps halfway through the experiment
Delta = 1
nsim = 1000
njump = nsim // 2
poles = np.where(np.arange(nsim) < njump, 0.5, 0.9)
b1 = 0.5
vare = 1e-4

np.random.seed(0)
u = np.sign(np.random.randn(nsim))
e = np.sqrt(vare)*np.random.randn(nsim)
y = np.zeros(nsim)
for i in range(1, nsim):
    y[i] = poles[i]*y[i-1] + b1*u[i-1] + e[i]

## Track the pole with each forgetting factor
data = {'u': u, 'y': y, 'poles': poles}
models = dict()
orders = (1, 1, 1)
for l in forgetting:
    est = RLSEstimator(sum(orders), forgetting=l)
    phi = np.zeros(est.n)
    Theta = np.zeros((nsim, est.n))
    for i in range(1, nsim):
        phi = shift_regressor(phi, (-y[i-1], u[i-1], est.error), orders)
        _, Theta[i], _ = est.step(y[i], phi)

    close = np.abs(-Theta[njump:, 0] - poles[-1]) < 0.05
    settle = f"{np.argmax(close)} samples" if np.any(close) else "never"
    print(f"forgetting={l}: final pole {-Theta[-1, 0]:.4f}, "
          f"within 0.05 after {settle}.")

    Gd, Hd, sysd, K = rls(u, y, 1, 1, Delta, forgetting=l)
    print(Gd)
    print(f"K = {K}\n")

    models[l] = {
        'Theta': Theta,
        'K': K,
        'A': sysd.A,
        'B': sysd.B,
    }

os.makedirs('data', exist_ok=True)
with open('data/siso_rls.pickle', 'wb') as handle:
    pickle.dump(data, handle, protocol=-1)
    pickle.dump(models, handle, protocol=-1)
