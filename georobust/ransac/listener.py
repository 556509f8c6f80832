class RobustEstimatorListener:
    """ 鲁棒估计事件监听器

    所有回调都在 estimate() 内部的调用线程中同步执行。回调中可以读取估计器的属性，
    但修改配置会抛出 LockedError
    """

    def onEstimateStart(self, estimator):
        """ 估计开始 """

    def onEstimateEnd(self, estimator):
        """ 估计结束（包括细化） """

    def onEstimateNextIteration(self, estimator, iteration):
        """ 完成一次迭代，iteration 从 1 开始 """

    def onEstimateProgressChange(self, estimator, progress):
        """ 估计进度变化超过 progress_delta，progress 位于 [0, 1] """
