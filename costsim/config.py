
# ---------------- CONFIG ----------------
SEED = 7
USESEED = True
NUM_FIRMS = 20

# Firm config
TR = 1_000_000.0        # total resources (capacity cost) per firm
CO = 10                 # cost objects (products)
RCP = 30                # resources

# Draws for firm heterogeneity
# g ~ U[DISP2_MIN, DISP2_MAX] share of TR held by the DISP1 biggest resources
DISP1 = 5
DISP2_MIN, DISP2_MAX = 0.4, 0.7
# d ~ U[DNS_MIN, DNS_MAX] density of the resource consumption pattern
DNS_MIN, DNS_MAX = 0.4, 0.7
# correlation of big (COR1) and small (COR2) resources with the baseline product vector
COR1LB, COR1UB = 0.2, 0.8
COR2LB, COR2UB = -0.2, 0.5
# true margins (SP / PC_B), products with MAR > 1 are in the benchmark mix
MARLB, MARUB = 0.5, 2.0

# ----- COST SYSTEMS -----
ACP = [1, 2, 4, 6]      # number of activity cost pools
PACP = [0, 1, 2, 3]     # pooling policy: 0 size, 1 correlation, 2 random, 3 sequential correlation
PDR = [0, 1]            # driver policy: 0 biggest resource, 1 indexed (NUM biggest)
NUM = 2                 # resources per indexed driver
MISCPOOLSIZE = 0.2      # floor on the value share left in the miscellaneous pool
CC = 0.4                # correlation cutoff used by the correlation pooling policies

# ----- DECISIONS -----
STARTMIX = 0            # 0 = benchmark mix, 1 = random mix
EXCLUDE = 0.25          # per-product exclusion probability when STARTMIX = 1
HYSTERESIS = 0.0        # dead band around margin 1.0

# ----- OUTPUT -----
OUTPUT_DIR = "output"
