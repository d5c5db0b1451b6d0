from control import c2d, ss, tf

import numpy as np
import pickle
from scipy.signal import dlsim
from time import time

## Force this script to start in the main repo directory
import sys
import os
main_dir = os.path.dirname(os.path.abspath(__file__)) + '/..'
os.chdir(main_dir)
sys.path.append(main_dir)

from arxid.arx import ARX, arx, armax
from arxid.rls import rls

###################
## Script config ##
###################
labels = [
    'ARX',
    'ARMAX',
    'RLS',
    'RLS (l=0.98)',
]

# System
k = 1
tau = 1

num = k
den = [tau, 1]
Delta = 0.1

sys = c2d(ss(tf(num, den)), Delta)
A = sys.A
B = sys.B
C = sys.C
n, m = B.shape
p = C.shape[0]

nrep = 4
tfin = 5*tau
nsam = int(np.floor(tfin/Delta)) + 1
varu = 0.1
vary = 0.01

np.random.seed(4)
u = np.ones([1, nsam])
u = np.hstack([u, np.zeros([1, nsam])])
u = np.hstack([u, -u])
u = np.hstack([u for i in range(nrep)])
u = np.hstack([np.zeros([1, 5]), u])
u = u + 0.2*np.random.randn(*u.shape)
nsim = u.shape[1]
tsim = Delta*np.arange(nsim)

# Innovations noise, so that y = B/A u + C/A e with C = 1 + c1 z^-1
e = np.sqrt(vary)*np.random.randn(1, nsim)
x = np.zeros([n, nsim])
y = np.zeros([p, nsim])
xp = np.zeros([n, 1])
Kp = 0.5
for i in range(nsim):
    x[:, i] = xp[:, 0]
    y[:, i] = C@xp + e[:, i]
    xp = A@xp + B*u[:, i] + Kp*e[:, i]

a0 = np.array([1, -A[0, 0]])
b0 = np.array([(C@B)[0, 0]])
c0 = np.array([1, Kp*C[0, 0] - A[0, 0]])
theta0 = np.concatenate([a0[1:], b0, c0[1:]])
print(f"Plant params: \t a1={a0[1]:.4f}, b1={b0[0]:.4f}, c1={c0[1]:.4f}.")

## Collect model fitting data
data = {'t': tsim, 'u': u, 'y': y, 'e': e}

models = dict()
for label in labels:
    K1 = None
    t0 = time()
    if label == 'ARX':
        Gd, Hd, sysd = arx(u, y, 1, 1, Delta, verbosity=1)
    elif label == 'ARMAX':
        Gd, Hd, sysd = armax(u, y, e, 1, 1, Delta, verbosity=1)
    elif label == 'RLS':
        Gd, Hd, sysd, K1 = rls(u, y, 1, 1, Delta, verbosity=1)
    elif label == 'RLS (l=0.98)':
        Gd, Hd, sysd, K1 = rls(u, y, 1, 1, Delta, forgetting=0.98,
                               verbosity=1)
    t1 = time() - t0

    theta1 = np.concatenate([Gd.den[1:], Gd.num[1:], Hd.num[1:]])
    if theta1.shape[0] < theta0.shape[0]:
        theta1 = np.append(theta1, np.nan)

    # Free response to the input only
    _, yf1, _ = dlsim((sysd.A, sysd.B[:, :1], sysd.C, sysd.D[:, :1], Delta),
                      u[0, :])

    print(label + f" params:\t a1={theta1[0]:.4f}, b1={theta1[1]:.4f}, "
          f"c1={theta1[2]:.4f}. ({t1:.4f}s)")
    if K1 is not None:
        print(f"\t\t K ={K1[0]:.4f}.")
    print(Gd)

    models[label] = {
        'yf': yf1,
        't': t1,
        'err': np.absolute(theta0-theta1) / np.absolute(theta0),
    }

# Cross-check against the model class
model = ARX(1, 1, sample_time=Delta).fit(u, y)
r1 = y[0, :] - model.predict(u, y)
print(f"ARX one-step prediction error: {r1@r1:.4f}.")

os.makedirs('data', exist_ok=True)
with open('data/siso_arx.pickle', 'wb') as handle:
    pickle.dump(data, handle, protocol=-1)
    pickle.dump(models, handle, protocol=-1)
