# Operator scripts
