# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from py_ecc.optimized_bn128 import curve_order, field_modulus

# bn254 moduli
FIELD_MODULUS = field_modulus
CURVE_ORDER = curve_order

# bn parameter x and the optimal ate loop count 6x + 2
BN_X = 4965661367192848881
ATE_LOOP_COUNT = 6 * BN_X + 2

# wire widths, all big-endian
FIELD_SIZE = 32
G1_COMPRESSED_SIZE = FIELD_SIZE
G1_UNCOMPRESSED_SIZE = 2 * FIELD_SIZE
G2_COMPRESSED_SIZE = 2 * FIELD_SIZE
G2_UNCOMPRESSED_SIZE = 4 * FIELD_SIZE
FQ12_SIZE = 12 * FIELD_SIZE
PROOF_SIZE = 2 * G1_COMPRESSED_SIZE + G2_COMPRESSED_SIZE
COUNT_SIZE = 4

# flag bits carried in the leading byte of a point encoding
ODD_FLAG = 0x80
INFINITY_FLAG = 0x40
FLAG_MASK = ODD_FLAG | INFINITY_FLAG

# request identifiers
REQUEST_ID_SIZE = 28
REQ_DOMAIN_TAG = "GROTH16|REQUEST|BN254|v1|".encode("utf-8").hex()

# state keys
VERDICT_PREFIX = "verdict/"
SESSION_PREFIX = "session/"

# host compute limits
MAX_COMPUTE_UNITS = 1_400_000
DEFAULT_COMPUTE_UNITS = 1_400_000
